#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Tags Azure CLI and Azure PowerShell traffic with an azlogin marker.

Both tools append the contents of an environment variable to the user agent of
every request they make: `AZURE_HTTP_USER_AGENT` for the CLI and
`AZUREPS_HOST_ENVIRONMENT` for PowerShell. The marker contains a hash of the
repository name, never the name itself.
"""

import hashlib
import logging
import os

from azlogin import __version__

LOG = logging.getLogger(__name__)

USER_AGENT_VARS = ("AZURE_HTTP_USER_AGENT", "AZUREPS_HOST_ENVIRONMENT")


def user_agent_marker(environ):
    """Returns the azlogin marker for the job described by `environ`."""
    repo = environ.get("GITHUB_REPOSITORY", "")
    repo_hash = hashlib.sha256(repo.encode("utf-8")).hexdigest()
    run_id = environ.get("GITHUB_RUN_ID", "")
    return f"AZLOGIN/{__version__}_{repo_hash}_{run_id}"


def set_user_agent(environ=None):
    """Appends the azlogin marker to the user agent variables in `environ`.

    Defaults to `os.environ`, so child processes started afterwards inherit the
    marker. Calling this more than once does not repeat the marker.
    """
    environ = os.environ if environ is None else environ
    marker = user_agent_marker(environ)

    for var in USER_AGENT_VARS:
        prefix = environ.get(var, "")
        if marker in prefix:
            continue
        environ[var] = f"{prefix} {marker}" if prefix else marker
        LOG.debug("set %s=%s", var, environ[var])
