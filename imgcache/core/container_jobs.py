'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.

Container Job Submitters
========================
Run a command inside a container on the cluster, either once on a GPU node
or once per input line as a Slurm job array.
'''

import os
import shlex

from imgcache.core.errors import EnvironmentUnresolved, InvalidArgument
from imgcache.core.models import SubmissionRequest
from imgcache.core.submitter import validate_positive_int


def resolve_image(image, known_images, tag=None, log=None):
    """
    Resolve an image shorthand to a qualified name.

    Args:
        image: Known shorthand (case-insensitive) or a qualified image name
        known_images: Dict of shorthand -> KnownImage
        tag: Optional tag, only honoured for shorthands
        log: Optional logger for the ignored-tag warning

    Returns:
        Tuple of (qualified image name, KnownImage or None)
    """
    if image is None or not image.strip():
        raise InvalidArgument("An image is required")
    known = known_images.get(image.strip().lower())
    if known is not None:
        return known.qualified_name(tag), known
    if tag and log:
        log.warning(f'Ignoring tag "{tag}" for fully qualified image {image}')
    return image.strip(), None


def resolve_entrypoint(command, path_exists=os.path.exists, realpath=os.path.realpath):
    """
    Decide the container entrypoint for command.

    A command naming an existing .sh file on the submitting host is treated as
    a user script: it is mounted into the container at its canonical path.

    Returns:
        Tuple of (entrypoint, list of volume mounts)
    """
    if command is None or not command.strip():
        raise InvalidArgument("A command to run inside the container is required")
    if command.endswith('.sh') and path_exists(command):
        mounted = realpath(command)
        return mounted, [f"{mounted}:{mounted}"]
    return command, []


def split_passthrough(value, what):
    """Split a caller-supplied argument string the way a shell would."""
    if not value:
        return []
    try:
        return shlex.split(value)
    except ValueError as e:
        raise InvalidArgument(f"Unable to parse {what} {value!r}: {e}") from e


class ContainerJobSubmitter:
    """Shared setup for container job submitters."""

    def __init__(self, log, config, scheduler, runtime, identity):
        self.log = log
        self.config = config
        self.scheduler = scheduler
        self.runtime = runtime
        self.identity = identity

    def _temp_dir(self):
        if not self.identity:
            raise EnvironmentUnresolved("Unable to determine the current user to resolve the temporary directory")
        return self.config.temp_dir_for(self.identity)

    @staticmethod
    def _script(lines):
        return '\n'.join(['#!/bin/bash', 'set -u'] + list(lines)) + '\n'


class GpuJobSubmitter(ContainerJobSubmitter):
    """Run one command in a container with a GPU attached."""

    def build_request(self, image, command, command_args=(), tag=None, sbatch_args=None, podman_args=None):
        qualified, known = resolve_image(image, self.config.known_images, tag=tag, log=self.log)
        entrypoint, script_volumes = resolve_entrypoint(command)
        extra_sbatch = split_passthrough(sbatch_args, 'sbatch arguments')
        extra_podman = split_passthrough(podman_args, 'podman arguments')
        temp_dir = self._temp_dir()

        volumes = list(self.config.shared_mounts) + script_volumes
        environment = {}
        if known is not None:
            volumes.extend(known.volumes)
            environment.update(known.env)

        run_cmd = self.runtime.run_command(
            qualified,
            entrypoint,
            args=list(command_args),
            volumes=volumes,
            environment=environment,
            devices=['nvidia.com/gpu=all'],
            security_opts=['label=disable'],
            shell_args=['-v', '"$HOME":"$HOME"', '-e', 'HPC_HOME="$HOME"'],
            auth_file=self.config.auth_file,
            extra_args=extra_podman,
        )
        script = self._script([self.scheduler.distributed_run(run_cmd, ntasks=1)])
        return SubmissionRequest(
            script=script,
            gres=self.config.gpu_gres,
            environment={'TMPDIR': temp_dir},
            extra_args=extra_sbatch,
        )

    def submit(self, image, command, command_args=(), tag=None, sbatch_args=None, podman_args=None):
        """
        Submit a single-node GPU container job.

        Returns:
            Scheduler-assigned job id
        """
        request = self.build_request(image, command, command_args, tag, sbatch_args, podman_args)
        self.log.info(f"Submitting GPU job: {command} in {image}")
        return self.scheduler.submit(request)


class ArrayJobSubmitter(ContainerJobSubmitter):
    """Run a container once per input line as a job array."""

    @staticmethod
    def clean_arg_lines(arg_lines):
        lines = [line.strip() for line in arg_lines]
        return [line for line in lines if line]

    def build_request(self, image, command, arg_lines, tag=None, max_tasks=None, sbatch_args=None, podman_args=None):
        inputs = self.clean_arg_lines(arg_lines)
        if not inputs:
            raise InvalidArgument("The argument file contains no non-blank lines")
        if max_tasks is None:
            max_tasks = self.config.array_max_tasks
        validate_positive_int(max_tasks, "Max tasks")

        qualified, known = resolve_image(image, self.config.known_images, tag=tag, log=self.log)
        entrypoint, script_volumes = resolve_entrypoint(command)
        extra_sbatch = split_passthrough(sbatch_args, 'sbatch arguments')
        extra_podman = split_passthrough(podman_args, 'podman arguments')
        temp_dir = self._temp_dir()

        volumes = script_volumes
        environment = {}
        if known is not None:
            volumes = volumes + list(known.volumes)
            environment.update(known.env)

        run_cmd = self.runtime.run_command(
            qualified,
            entrypoint,
            arg_expression='"${INPUT[$SLURM_ARRAY_TASK_ID]}"',
            volumes=volumes,
            environment=environment,
            auth_file=self.config.auth_file,
            extra_args=extra_podman,
        )
        lines = ['INPUT=('] + [shlex.quote(line) for line in inputs] + [')']
        lines.append(self.scheduler.distributed_run(run_cmd, ntasks=1))
        return SubmissionRequest(
            script=self._script(lines),
            array=f"0-{len(inputs) - 1}%{max_tasks}",
            environment={'TMPDIR': temp_dir, 'REGISTRY_AUTH_FILE': self.config.auth_file},
            extra_args=extra_sbatch,
        )

    def submit(self, image, command, arg_lines, tag=None, max_tasks=None, sbatch_args=None, podman_args=None):
        """
        Submit a job array with one task per non-blank line of arg_lines.

        Returns:
            Scheduler-assigned job id
        """
        request = self.build_request(image, command, arg_lines, tag, max_tasks, sbatch_args, podman_args)
        self.log.info(f"Submitting array job: {command} in {image} ({request.array})")
        return self.scheduler.submit(request)
