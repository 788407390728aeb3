"""Service activities.

Each activity performs a single unit of work behind an HTTP route:
- parse_kml: Extract the site folder and placemark geometry from KML/KMZ
- import_sites: Preview, confirm and create site and segment assets
- schedule_logs: Expand a log template into recurring occurrences
"""
