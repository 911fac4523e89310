'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''


class ImageCacheError(Exception):
    """Base class for all submission errors. Carries the CLI exit code."""

    exit_code = 1


class InvalidArgument(ImageCacheError):
    """Caller input rejected before any external call is made."""

    exit_code = 2


class SubmissionFailed(ImageCacheError):
    """The scheduler client rejected or could not accept the request."""

    exit_code = 1


class EnvironmentUnresolved(ImageCacheError):
    """The identity used to namespace per-user paths cannot be determined."""

    exit_code = 3


class ConfigurationError(ImageCacheError):
    """The site configuration file is missing, unreadable or invalid."""

    exit_code = 4
