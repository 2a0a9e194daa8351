from .pickup import Pickup
