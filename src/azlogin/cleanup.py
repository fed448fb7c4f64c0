#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Removes cached Azure credentials at the end of a CI job.

Cleanup runs whether or not the login succeeded and must never fail the job.
`cleanup` therefore wraps its whole sequence in `best_effort`, which turns any
`Exception` into a warning:

    Login cleanup failed with <message>. Cleanup will be skipped.

The traceback of the failure is logged at DEBUG level along with a description
of the step that failed. A failure of an external tool
(`azlogin.process.CommandError`) or a missing tool (`FileNotFoundError`) is
expected, anything else is reported as an unexpected error. Exceptions outside
of the `Exception` hierarchy, such as `KeyboardInterrupt`, are not caught.
"""

import logging

from azlogin.inputs import is_true
from azlogin.login.azcli import clear_cli_accounts
from azlogin.login.azps import clear_ps_contexts
from azlogin.process import CommandError, CommandRunner
from azlogin.useragent import set_user_agent

LOG = logging.getLogger(__name__)

EXPECTED_FAILURES = (CommandError, FileNotFoundError)

CLEANUP_DESCRIPTION = "clear cached Azure credentials"


def best_effort(step, description, *args, **kwargs):
    """Calls `step(*args, **kwargs)`, logging instead of raising on failure.

    `description` names the step in the DEBUG record that carries the
    traceback. Returns true if the step completed, false if it raised.
    """
    try:
        step(*args, **kwargs)
        return True

    except Exception as e:  # pylint: disable=broad-except
        LOG.warning("Login cleanup failed with %s. Cleanup will be skipped.", e)
        if isinstance(e, EXPECTED_FAILURES):
            LOG.debug("failed to %s", description, exc_info=True)
        else:
            LOG.debug("unexpected error trying to %s", description, exc_info=True)

    return False


def cleanup(enable_ps_session, runner=None):
    """Removes cached Azure CLI credentials, and Az PowerShell ones if enabled.

    `enable_ps_session` is the value of the `enable-AzPSSession` input. The
    PowerShell contexts are cleared only if it is the case-insensitive text
    "true" (a bool `True` works as well). Returns true if every step completed.
    This function does not raise.
    """
    runner = runner if runner is not None else CommandRunner()
    return best_effort(
        _cleanup_sequence, CLEANUP_DESCRIPTION, is_true(enable_ps_session), runner
    )


def _cleanup_sequence(clear_ps, runner):
    set_user_agent()
    clear_cli_accounts(runner)
    if clear_ps:
        clear_ps_contexts(runner)
    LOG.info("login cleanup completed")
