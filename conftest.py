import os

# Configure Django settings before any tests are collected.
# pytest-django reads DJANGO_SETTINGS_MODULE from pyproject.toml; the default
# here keeps `python -m pytest` working from any directory.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'dispatch_core.test_settings')

# python -m pytest
# python manage.py test --settings=dispatch_core.test_settings
