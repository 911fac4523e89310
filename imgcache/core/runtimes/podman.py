'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

import shlex


class PodmanRuntime:
    """Podman container runtime implementation.

    Only builds command lines; they are executed on the compute nodes by the
    batch job, never locally.
    """

    def __init__(self, log, podman='podman'):
        self.log = log
        self.podman = podman

    def pull_command(self, image, auth_file):
        """Pull an image using an explicit credentials file."""
        cmd = f"{self.podman} pull --authfile {shlex.quote(auth_file)} {shlex.quote(image)}"
        self.log.debug(f"Pull command: {cmd}")
        return cmd

    def run_command(
        self,
        image,
        entrypoint,
        args=(),
        arg_expression=None,
        volumes=None,
        environment=None,
        devices=None,
        security_opts=None,
        shell_args=None,
        auth_file=None,
        extra_args=None,
    ):
        """Build a `podman run --rm` command line.

        Args:
            image: Fully qualified image name
            entrypoint: Command executed inside the container
            args: Arguments to the entrypoint (quoted)
            arg_expression: Optional shell expression appended verbatim after args,
                            e.g. an array element expanded by the batch script
            volumes: List of volume mounts (quoted)
            environment: Dict of environment variables (quoted)
            devices: List of device passthroughs
            security_opts: List of security options
            shell_args: Pre-quoted fragments inserted verbatim, for arguments
                        that rely on shell expansion such as "$HOME"
            auth_file: Registry credentials file
            extra_args: Additional podman arguments from the caller (quoted)
        """
        parts = [self.podman, 'run', '--rm']
        parts.extend(
            self._build_runtime_args(
                {
                    'security_opt': security_opts or [],
                    'devices': devices or [],
                    'volumes': volumes or [],
                    'env': environment or {},
                }
            )
        )
        parts.extend(shell_args or [])
        if auth_file:
            parts.extend(['--authfile', shlex.quote(auth_file)])
        parts.extend(['--entrypoint', shlex.quote(entrypoint)])
        parts.extend(shlex.quote(arg) for arg in (extra_args or []))
        parts.append(shlex.quote(image))
        parts.extend(shlex.quote(arg) for arg in args)
        if arg_expression:
            parts.append(arg_expression)
        return ' '.join(parts)

    @staticmethod
    def _build_runtime_args(runtime_args_config):
        """Build quoted podman arguments from a runtime args mapping."""
        args = []

        # Security options
        for opt in runtime_args_config.get('security_opt', []):
            args.append(shlex.quote(f'--security-opt={opt}'))

        # Devices
        for dev in runtime_args_config.get('devices', []):
            args.append(shlex.quote(f'--device={dev}'))

        # Volumes
        for vol in runtime_args_config.get('volumes', []):
            args.extend(['-v', shlex.quote(vol)])

        # Environment variables
        for key, value in runtime_args_config.get('env', {}).items():
            args.extend(['-e', shlex.quote(f'{key}={value}')])

        return args
