"""
dbtools - folder based SQL migration runner for PostgreSQL and MariaDB.
"""

__version__ = "0.1.0"
