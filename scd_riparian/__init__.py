"""Riparian site and maintenance-log service.

Azure Functions application that imports riparian restoration sites and
their segments from KML uploads and records herbicide, mowing and
watering maintenance logs (single records or recurring schedules) in a
farm record-keeping backend.
"""

__version__ = "0.1.0"
