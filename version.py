"""
Version information for the School Administration Portal
"""

__version__ = "1.0.0"
__version_info__ = tuple(map(int, __version__.split('.')))

# Version metadata
VERSION_MAJOR = __version_info__[0]
VERSION_MINOR = __version_info__[1]
VERSION_PATCH = __version_info__[2]

# Application metadata
APP_NAME = "School Administration Portal"
APP_DESCRIPTION = "Registration approval, pupil records, grades and attendance for a Grades 1-6 public elementary school"
