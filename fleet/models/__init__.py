# models/__init__.py
from .core import Vehicle, Driver
