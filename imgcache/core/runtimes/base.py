'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

from typing import Protocol, runtime_checkable


@runtime_checkable
class ContainerRuntime(Protocol):
    """Protocol for container runtime implementations."""

    def pull_command(self, image, auth_file):
        """Command line that pulls an image into the node-local cache."""
        ...

    def run_command(self, image, entrypoint, args=(), **runtime_args):
        """Command line that runs a one-shot container."""
        ...
