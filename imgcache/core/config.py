'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

import json
import os
import re
from typing import Annotated, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from imgcache.core.errors import ConfigurationError, EnvironmentUnresolved

PositiveInt = Annotated[int, Field(gt=0)]

# Identities end up inside filesystem paths and the sbatch --export list
IDENTITY_PATTERN = re.compile(r'^[A-Za-z0-9._@-]+$')


class KnownImage(BaseModel):
    """Site shorthand for a frequently used image."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    repository: str = Field(min_length=1)
    default_tag: str = Field(min_length=1)
    volumes: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)

    def qualified_name(self, tag=None):
        return f"{self.repository}:{tag or self.default_tag}"


def _default_known_images():
    return {
        'freesurfer': KnownImage(
            repository='docker.io/freesurfer/freesurfer',
            default_tag='7.3.2',
            volumes=[
                '/mnt/apps/etc/fs_license.txt:/usr/local/freesurfer/.license:ro',
                '/opt/matlab/runtime/R2019b/v97/:/usr/local/freesurfer/MCRv97',
            ],
            env={'FS_LICENSE': '/usr/local/freesurfer/.license'},
        ),
    }


class SiteConfig(BaseModel):
    """
    Site-wide settings for image caching and container job submission.

    Every value the submitters need from the cluster (credential location,
    shared storage layout, scheduler defaults) lives here so that the
    submitters never read the process environment themselves.

    Example site file (JSON or YAML with the same keys):
    ```json
    {
      "auth_file": "/mnt/apps/etc/auth.json",
      "temp_dir_template": "/ssd/home/{user}/TEMP",
      "node_count": 4,
      "output_pattern": "cache-image-%N-%j.out",
      "login_node": "hpc-login01",
      "ssh_user": "svc_imgcache",
      "priv_key_file": "~/.ssh/id_ed25519"
    }
    ```
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    scheduler: Literal['slurm'] = 'slurm'
    runtime: Literal['podman'] = 'podman'

    auth_file: str = Field(default='/mnt/apps/etc/auth.json', min_length=1)
    temp_dir_template: str = '/ssd/home/{user}/TEMP'
    node_count: PositiveInt = 4
    output_pattern: str = 'cache-image-%N-%j.out'

    sbatch: str = 'sbatch'
    srun: str = 'srun'
    podman: str = 'podman'

    gpu_gres: str = 'gpu:a100:1'
    array_max_tasks: PositiveInt = 16
    shared_mounts: List[str] = Field(default_factory=lambda: ['/mnt/home/shared/'])
    known_images: Dict[str, KnownImage] = Field(default_factory=_default_known_images)

    login_node: Optional[str] = None
    ssh_user: Optional[str] = None
    priv_key_file: Optional[str] = None
    password: Optional[str] = None

    @field_validator('temp_dir_template')
    @classmethod
    def validate_temp_dir_template(cls, v: str) -> str:
        if '{user}' not in v:
            raise ValueError(f"temp_dir_template must contain '{{user}}', got {v!r}")
        return v

    @field_validator('output_pattern')
    @classmethod
    def validate_output_pattern(cls, v: str) -> str:
        missing = [p for p in ('%N', '%j') if p not in v]
        if missing:
            raise ValueError(f"output_pattern must contain {' and '.join(missing)}, got {v!r}")
        return v

    @field_validator('known_images')
    @classmethod
    def lowercase_known_images(cls, v):
        return {name.lower(): image for name, image in v.items()}

    def temp_dir_for(self, identity):
        """Per-user temporary directory on shared storage."""
        return self.temp_dir_template.format(user=identity)

    @classmethod
    def from_file(cls, path, overrides=None):
        """
        Load a site configuration from a JSON or YAML file.

        Args:
            path: Path to the site file. '.yaml' and '.yml' are read as YAML,
                  anything else as JSON.
            overrides: Optional dict applied on top of the file contents

        Returns:
            SiteConfig instance

        Raises:
            ConfigurationError: If the file cannot be read or fails validation
        """
        path = os.path.expanduser(path)
        try:
            with open(path) as f:
                if path.endswith(('.yaml', '.yml')):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Site file '{path}' not found.")
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Invalid site file '{path}': {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Unable to read site file '{path}': {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Site file '{path}' must contain a mapping, got {type(data).__name__}")

        return cls.from_dict(data, overrides)

    @classmethod
    def from_dict(cls, data, overrides=None):
        merged = dict(data)
        if overrides:
            merged.update(overrides)
        try:
            return cls(**merged)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid site configuration: {e}") from e


def resolve_identity(environ):
    """
    Determine the caller identity used to namespace per-user paths.

    Args:
        environ: Mapping of environment variables (normally os.environ)

    Returns:
        The user name

    Raises:
        EnvironmentUnresolved: If neither USER nor LOGNAME holds a usable name
    """
    for var in ('USER', 'LOGNAME'):
        identity = (environ.get(var) or '').strip()
        if not identity:
            continue
        if not IDENTITY_PATTERN.match(identity):
            raise EnvironmentUnresolved(
                f"{var}={identity!r} cannot be used to namespace the temporary directory"
            )
        return identity
    raise EnvironmentUnresolved(
        "Unable to determine the current user: set USER (or LOGNAME) so the temporary directory can be resolved"
    )
