'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

from typing import Protocol, runtime_checkable


@runtime_checkable
class BatchScheduler(Protocol):
    """Protocol for batch scheduler client implementations."""

    def submit(self, request):
        """Submit a SubmissionRequest and return the scheduler-assigned job id."""
        ...

    def distributed_run(self, command, output=None, ntasks=None):
        """Wrap a command so it runs on every node allocated to the job."""
        ...
