#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Adapts managed identity login flags to the installed Azure CLI version.

Azure CLI 2.69.0 renamed the flag used to pick a user-assigned managed identity
from `--username` to `--client-id`. Only the minor number of the version is
consulted; all supported releases share major version 2.

    >>> args = ['--identity']
    >>> add_identity_client_arg(args, 'my-client-id', '2.68.0')
    >>> args
    ['--identity', '--username', 'my-client-id']
"""

import logging
import re

LOG = logging.getLogger(__name__)

CLIENT_ID_FLAG_MINOR_VERSION = 69

PARSE_FAILURE_WARNING = (
    "Failed to parse the minor version of Azure CLI. "
    "Assuming the version is less than 2.69.0"
)

_DIGITS = re.compile(r"[0-9]+")


def parse_minor_version(version):
    """Returns the minor version of a `major.minor.patch` string as an int.

    Returns `None` when there is no second component or when it is anything
    other than plain ASCII digits, e.g. `"69-beta"` or `"-1"`.
    """
    parts = str(version).split(".")
    if len(parts) < 2 or not _DIGITS.fullmatch(parts[1]):
        return None
    return int(parts[1])


def add_identity_client_arg(args, client_id, az_version):
    """Appends the flag selecting a user-assigned identity to `args`.

    Appends `--client-id` and `client_id` when `az_version` is 2.69.0 or later,
    otherwise `--username` and `client_id`. A version whose minor number cannot
    be parsed is treated as older than 2.69.0 and logs a warning.
    """
    minor = parse_minor_version(az_version)

    if minor is None:
        LOG.warning(PARSE_FAILURE_WARNING)
        flag = "--username"
    elif minor >= CLIENT_ID_FLAG_MINOR_VERSION:
        flag = "--client-id"
    else:
        flag = "--username"

    LOG.debug("az %s uses %s for user-assigned identity", az_version, flag)
    args.extend([flag, client_id])
