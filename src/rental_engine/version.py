"""Version metadata for RentalEngine."""

__app_name__ = "RentalEngine"
__company__ = "KirayaKart"
__version__ = "0.4.0"
