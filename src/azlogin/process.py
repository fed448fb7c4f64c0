#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Runs the external tools (`az` and `pwsh`) that do the real work.

`CommandRunner` is the only place in azlogin that starts processes. The login
and cleanup orchestrators take a runner in their constructors, so tests can
hand them a `unittest.mock.MagicMock(spec=CommandRunner)` instead.

Command lines are logged at INFO level. Values following a sensitive flag such
as `--password` are replaced with `***` before logging.
"""

import logging
import shutil
import subprocess

LOG = logging.getLogger(__name__)

SENSITIVE_FLAGS = {"--password", "-p", "--federated-token", "-Command"}

REDACTED = "***"


class CommandError(RuntimeError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, command, returncode, stderr=""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr or ""
        detail = f": {self.stderr.strip()}" if self.stderr.strip() else ""
        super().__init__(f"'{command}' failed with exit code {returncode}{detail}")


def redact(args):
    """Returns a copy of `args` with the values of sensitive flags masked.

    Both `--flag value` and `--flag=value` forms are handled.
    """
    redacted = []
    mask_next = False
    for arg in args:
        if mask_next:
            redacted.append(REDACTED)
            mask_next = False
            continue

        flag, sep, _ = arg.partition("=")
        if sep and flag in SENSITIVE_FLAGS:
            redacted.append(f"{flag}={REDACTED}")
            continue

        redacted.append(arg)
        mask_next = arg in SENSITIVE_FLAGS

    return redacted


class CommandRunner:
    """Resolves and runs command line tools.

    Resolved paths are remembered, so a tool is searched for on the `PATH` only
    once per runner. An optional `timeout` in seconds is passed through to
    `subprocess.run`; by default there is none.
    """

    def __init__(self, timeout=None):
        self.timeout = timeout
        self._paths = {}

    def which(self, command):
        """Returns the absolute path of `command` or raises `FileNotFoundError`."""
        if command not in self._paths:
            path = shutil.which(command)
            if not path:
                raise FileNotFoundError(
                    f"'{command}' not found in PATH, have you installed it?"
                )
            LOG.debug("resolved %s to %s", command, path)
            self._paths[command] = path
        return self._paths[command]

    def run(self, command, args, check=True):
        """Runs `command` with `args` and returns the `CompletedProcess`.

        Output is captured as text. If `check` is true and the command exits
        with a non-zero status, `CommandError` is raised. The captured stdout
        and stderr are logged at DEBUG level.
        """
        cmd = [self.which(command)] + list(args)
        LOG.info("running %s %s", command, " ".join(redact(args)))

        result = subprocess.run(
            cmd,
            check=False,
            universal_newlines=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=self.timeout,
        )

        if result.stdout:
            LOG.debug("%s stdout: %s", command, result.stdout.strip())
        if result.stderr:
            LOG.debug("%s stderr: %s", command, result.stderr.strip())

        if check and result.returncode != 0:
            raise CommandError(command, result.returncode, result.stderr)

        return result
