"""
clinicscheduler - Appointment slot finding and ranking for therapy clinics.
"""

__version__ = "0.1.0"
