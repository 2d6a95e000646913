"""Attendance API package.

The package is organized by feature modules (users, auth, ...) with a thin
Flask controller layer over service/repository layers. The auth module holds
the login state machine, token rotation and two-factor lifecycle.
"""

__version__ = "0.1.0"
