'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

import re
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

PositiveInt = Annotated[int, Field(gt=0)]
NonEmptyStr = Annotated[str, Field(min_length=1)]

_PLACEHOLDER = re.compile(r'%([Nj%])')


def expand_output_pattern(pattern, node_name, job_id):
    """Expand the Slurm filename placeholders %N (node), %j (job id) and %%."""
    values = {'N': str(node_name), 'j': str(job_id), '%': '%'}
    return _PLACEHOLDER.sub(lambda m: values[m.group(1)], pattern)


class JobSpec(BaseModel):
    """One image cache request. Built per invocation and discarded after submission."""

    model_config = ConfigDict(frozen=True)

    image_reference: NonEmptyStr
    node_count: PositiveInt
    working_temp_dir: NonEmptyStr
    auth_file_path: NonEmptyStr
    output_pattern: NonEmptyStr

    def output_path(self, node_name, job_id):
        """Log file written by one node for one job."""
        return expand_output_pattern(self.output_pattern, node_name, job_id)


class SubmissionRequest(BaseModel):
    """
    A single batch submission, independent of the scheduler CLI.

    Exactly one of `wrap` (a command line run as the job) or `script`
    (a batch script handed to the scheduler on stdin) must be set.
    """

    model_config = ConfigDict(frozen=True)

    wrap: Optional[str] = None
    script: Optional[str] = None
    nodes: Optional[PositiveInt] = None
    output: Optional[str] = None
    environment: Dict[str, str] = Field(default_factory=dict)
    gres: Optional[str] = None
    array: Optional[str] = None
    extra_args: List[str] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_payload(self):
        if (self.wrap is None) == (self.script is None):
            raise ValueError("exactly one of 'wrap' or 'script' must be provided")
        return self


class CommandResult(BaseModel):
    """Outcome of one executor call."""

    exit_code: int
    stdout: str = ''
    stderr: str = ''

    @property
    def ok(self):
        return self.exit_code == 0
