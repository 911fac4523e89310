'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.
'''

import re
import shlex

from imgcache.core.errors import InvalidArgument, SubmissionFailed
from imgcache.lib.exec_lib import ExecutorError

JOB_ID_PATTERN = re.compile(r'^\d+$')


class SlurmScheduler:
    """Slurm batch scheduler client built on sbatch/srun."""

    def __init__(self, log, executor, sbatch='sbatch', srun='srun'):
        self.log = log
        self.executor = executor  # LocalExecutor or SshExecutor
        self.sbatch = sbatch
        self.srun = srun

    def distributed_run(self, command, output=None, ntasks=None):
        """
        Wrap a command with srun so it runs once per allocated task.

        Args:
            command: Shell command line to run on each node
            output: Optional per-task output file pattern (%N, %j, ...)
            ntasks: Optional task count; srun defaults to one task per node

        Returns:
            srun command line
        """
        parts = [self.srun]
        if ntasks is not None:
            parts.append(f"--ntasks={int(ntasks)}")
        if output:
            parts.append(shlex.quote(f"--output={output}"))
        parts.append(command)
        return ' '.join(parts)

    @staticmethod
    def _export_arg(environment):
        for key, value in environment.items():
            if ',' in key or ',' in value or '=' in key:
                raise InvalidArgument(f"Environment override {key}={value!r} cannot be passed through --export")
        pairs = [f"{key}={value}" for key, value in environment.items()]
        return '--export=' + ','.join(['ALL'] + pairs)

    def build_argv(self, request):
        """Translate a SubmissionRequest into sbatch arguments."""
        argv = [self.sbatch, '--parsable']
        if request.nodes is not None:
            argv.append(f"--nodes={request.nodes}")
        if request.output is not None:
            argv.append(f"--output={request.output}")
        if request.gres:
            argv.append(f"--gres={request.gres}")
        if request.array:
            argv.append(f"--array={request.array}")
        if request.environment:
            argv.append(self._export_arg(request.environment))
        argv.extend(request.extra_args)
        if request.wrap is not None:
            argv.append(f"--wrap={request.wrap}")
        return argv

    @staticmethod
    def parse_job_id(stdout):
        """Job id from `sbatch --parsable` output ("<id>" or "<id>;<cluster>")."""
        for line in stdout.splitlines():
            line = line.strip()
            if not line:
                continue
            job_id = line.split(';', 1)[0].strip()
            if JOB_ID_PATTERN.match(job_id):
                return job_id
            break
        raise SubmissionFailed(f"Unable to parse job id from sbatch output: {stdout.strip()!r}")

    def submit(self, request):
        """
        Submit the request with a single sbatch call.

        Returns:
            Job id string

        Raises:
            SubmissionFailed: sbatch could not be run, reported an error, or
                printed no job id. Never retried here.
        """
        argv = self.build_argv(request)
        self.log.debug(f"sbatch command: {shlex.join(argv)}")
        if request.script is not None:
            self.log.debug(f"Batch script:\n{request.script}")

        try:
            result = self.executor.run(argv, stdin=request.script)
        except ExecutorError as e:
            raise SubmissionFailed(str(e)) from e

        if not result.ok:
            message = result.stderr.strip() or result.stdout.strip() or 'no output'
            raise SubmissionFailed(f"sbatch exited with status {result.exit_code}: {message}")

        job_id = self.parse_job_id(result.stdout)
        self.log.info(f"Submitted batch job {job_id}")
        return job_id
