"""Site attendance package.

Geofenced check-in/check-out and work-schedule evaluation, organized by feature
modules (geo, schedules, attendance, requests) with a thin Flask controller layer
and a backend client standing in for repositories.
"""
