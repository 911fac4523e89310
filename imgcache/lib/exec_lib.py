'''
Copyright 2025 Advanced Micro Devices, Inc.
All rights reserved. This notice is intended as a precaution against inadvertent publication and does not imply publication or any waiver of confidentiality.
The year included in the foregoing notice is the year of creation of the work.
All code contained here is Property of Advanced Micro Devices, Inc.

Command executors used by scheduler clients.

LocalExecutor runs the scheduler CLI on the current host. SshExecutor runs it
on a login node through parallel-ssh, for workstations that cannot submit
jobs themselves.
'''

import os
import shlex
import subprocess
import uuid

from pssh import exceptions as pssh_exceptions
from pssh.clients import SSHClient

from imgcache.core.models import CommandResult

HEREDOC_PREFIX = 'IMGCACHE_EOF'


class ExecutorError(Exception):
    """The command could not be started or the remote host could not be reached."""


class LocalExecutor:
    """Run commands on the local host with subprocess."""

    def __init__(self, log):
        self.log = log

    def run(self, argv, stdin=None):
        """
        Run argv to completion.

        Args:
            argv: Command and arguments, not passed through a shell
            stdin: Optional text written to the command's stdin

        Returns:
            CommandResult
        """
        self.log.debug(f"Running locally: {shlex.join(argv)}")
        try:
            completed = subprocess.run(
                argv,
                input=stdin,
                text=True,
                capture_output=True,
            )
        except OSError as e:
            raise ExecutorError(f"Unable to invoke {argv[0]}: {e}") from e
        return CommandResult(exit_code=completed.returncode, stdout=completed.stdout or '', stderr=completed.stderr or '')


class SshExecutor:
    """
    Run commands on a single remote host (normally a cluster login node).

    A fresh connection is opened per call and closed afterwards; submitters
    make one call per invocation.
    """

    def __init__(self, log, host, user=None, pkey=None, password=None):
        self.log = log
        self.host = host
        self.user = user
        self.pkey = os.path.expanduser(pkey) if pkey else None
        self.password = password

    @staticmethod
    def build_remote_command(argv, stdin=None, marker=None):
        """
        Quote argv for the remote shell, delivering stdin as a here-document.

        The terminator is random per call and must not occur anywhere in the
        body, so no line of the body can end the here-document early.
        """
        cmd = shlex.join(argv)
        if stdin is None:
            return cmd
        marker = marker or f"{HEREDOC_PREFIX}_{uuid.uuid4().hex}"
        if marker in stdin:
            raise ExecutorError(f"Here-document terminator {marker} occurs in the command input")
        body = stdin if stdin.endswith('\n') else stdin + '\n'
        return f"{cmd} <<'{marker}'\n{body}{marker}"

    def _connect(self):
        return SSHClient(self.host, user=self.user, password=self.password, pkey=self.pkey)

    def run(self, argv, stdin=None):
        cmd = self.build_remote_command(argv, stdin)
        self.log.debug(f"Running on {self.host}: {shlex.join(argv)}")
        try:
            client = self._connect()
        except (
            pssh_exceptions.UnknownHostError,
            pssh_exceptions.ConnectionError,
            pssh_exceptions.AuthenticationError,
            pssh_exceptions.SessionError,
            pssh_exceptions.Timeout,
        ) as e:
            raise ExecutorError(f"Unable to connect to {self.host}: {e}") from e

        try:
            host_out = client.run_command(cmd)
            stdout = '\n'.join(host_out.stdout)
            stderr = '\n'.join(host_out.stderr)
            client.wait_finished(host_out)
        except (pssh_exceptions.SessionError, pssh_exceptions.Timeout) as e:
            raise ExecutorError(f"Command failed on {self.host}: {e}") from e
        finally:
            client.disconnect()

        exit_code = host_out.exit_code
        # exit_code stays None when the channel closes without a status
        if exit_code is None:
            exit_code = 255
        return CommandResult(exit_code=exit_code, stdout=stdout, stderr=stderr)


def create_executor(log, config):
    """Pick the executor for a SiteConfig: SSH when a login node is configured."""
    if config.login_node:
        return SshExecutor(
            log,
            config.login_node,
            user=config.ssh_user,
            pkey=config.priv_key_file,
            password=config.password,
        )
    return LocalExecutor(log)
