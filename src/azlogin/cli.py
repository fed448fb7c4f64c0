#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Command line entry points for logging a CI job into Azure.

## Synopsis

    $ azlogin [options] [input flags]
    $ azlogin-cleanup [options] [--enable-azpssession VALUE]

## Description

`azlogin` logs the Azure CLI, and optionally Azure PowerShell, into Azure using
a service principal or a managed identity. It is meant to run as the first step
of a CI job. `azlogin-cleanup` is meant to run as the last step, whether or not
the job succeeded, and removes the cached credentials again.

Inputs can be provided three ways; the first one found wins:

1. command line flags, e.g. `--client-id 0000...`;
2. environment variables named `INPUT_<NAME>`, e.g. `INPUT_CLIENT-ID`, which is
   how GitHub Actions passes the `with:` parameters of a step;
3. the `Inputs` section of the configuration file.

Prefer environment variables for secrets such as `creds` and `federated-token`
as command line flags are visible to other processes on the host.

## Examples

Log in as a user-assigned managed identity:

    $ azlogin --auth-type IDENTITY --client-id $CLIENT_ID --subscription-id $SUB

Log in as a service principal with a federated token from a file:

    $ azlogin --client-id $CLIENT_ID --tenant-id $TENANT \\
        --federated-token-file /var/run/secrets/azure/tokens/azure-identity-token \\
        --allow-no-subscriptions true

## Configuration

The configuration file is read from the path in `AZLOGIN_CONFIG`, or from
`~/.azlogin.yaml`. It may contain two sections:

    CLI:
      log_level: INFO

    Inputs:
      environment: azureusgovernment
      enable-AzPSSession: true

## Exit Status

`azlogin` exits with `0` on success and `1` on any error. By default only the
error message is logged. Set `AZLOGIN_TRACE` to `1` to print the traceback.

`azlogin-cleanup` always exits with `0`. Failures are logged as warnings.
"""

import argparse
import logging
import os
import sys
import traceback
from functools import partial
from pathlib import Path

from azlogin import __version__
from azlogin.argparse import RawAndDefaultsFormatter, add_input_flags, input_overrides
from azlogin.cleanup import cleanup
from azlogin.config import Choice, Config
from azlogin.inputs import Inputs
from azlogin.login.azcli import AzureCliLogin
from azlogin.login.azps import AzPSLogin
from azlogin.loginconfig import LoginConfig
from azlogin.process import CommandRunner
from azlogin.useragent import set_user_agent

LOG = logging.getLogger(__name__)

LOGIN_DESCRIPTION = """
Logs the Azure CLI, and optionally Azure PowerShell, into Azure.

Each input can also be set with an INPUT_<NAME> environment variable or in
the Inputs section of the configuration file.
    """.strip()

CLEANUP_DESCRIPTION = """
Removes cached Azure CLI and Azure PowerShell credentials. Never fails.
    """.strip()

LOGIN_INPUTS = [
    ("auth-type", "SERVICE_PRINCIPAL or IDENTITY"),
    ("creds", "JSON with clientId, clientSecret, tenantId, subscriptionId"),
    ("client-id", "client ID of the service principal or user-assigned identity"),
    ("tenant-id", "tenant ID of the service principal"),
    ("subscription-id", "subscription to select after login"),
    ("certificate-path", "PEM certificate of the service principal"),
    ("federated-token", "OIDC token for workload identity federation"),
    ("federated-token-file", "file containing the OIDC token"),
    ("environment", "Azure cloud to log into"),
    ("allow-no-subscriptions", "true to allow tenant-level access"),
    ("enable-AzPSSession", "true to log Azure PowerShell in as well"),
]

CLEANUP_INPUTS = [
    ("enable-AzPSSession", "true to clear Azure PowerShell contexts as well"),
]

LOG_LEVELS = ["DEBUG", "INFO", "WARN", "ERROR"]


# setup.py establishes this as the entry point for the azlogin CLI.
def main(argv=None):
    """Runs the `azlogin` CLI and exits with `1` on any error."""
    try:
        _login_cli(sys.argv[1:] if argv is None else argv)

    except Exception as e:  # pylint: disable=broad-except
        if os.getenv("AZLOGIN_TRACE"):
            traceback.print_exc(file=sys.stderr)

        # The failure may happen before the log level has been read
        _setup_logging("INFO")
        LOG.error("Login failed with %s. Double check if the inputs are correct.", e)
        sys.exit(1)


# setup.py establishes this as the entry point for the azlogin-cleanup CLI.
def cleanup_main(argv=None):
    """Runs the `azlogin-cleanup` CLI. Cleanup failures do not change the exit status.

    If the configuration or the command line cannot be read, Azure CLI accounts
    are still cleared, but Azure PowerShell contexts are left alone.
    """
    enable_ps_session = ""
    try:
        enable_ps_session = _cleanup_cli(sys.argv[1:] if argv is None else argv)

    except Exception as e:  # pylint: disable=broad-except
        _setup_logging("INFO")
        LOG.warning(
            "Cannot read cleanup inputs: %s. Azure PowerShell contexts will not be cleared.",
            e,
        )
        LOG.debug("cleanup inputs traceback", exc_info=True)

    cleanup(enable_ps_session)


def config_filename():
    """Returns the path to the user configuration."""
    return os.environ.get("AZLOGIN_CONFIG", Path.home() / ".azlogin.yaml")


def _cleanup_cli(argv):
    config = Config.from_file(config_filename())
    parser = _parser(config, CLEANUP_DESCRIPTION)
    dests = add_input_flags(parser, CLEANUP_INPUTS, title="cleanup inputs")
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # --help and --version exit with 0, usage errors must not fail the job
        if not e.code:
            raise
        raise ValueError("invalid command line arguments") from None
    _setup_logging(args.log_level)

    inputs = Inputs(config, overrides=input_overrides(args, dests))
    return inputs.get("enable-AzPSSession")


def _login_cli(argv):
    config = Config.from_file(config_filename())
    parser = _parser(config, LOGIN_DESCRIPTION)
    dests = add_input_flags(parser, LOGIN_INPUTS)
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    inputs = Inputs(config, overrides=input_overrides(args, dests))
    login_config = LoginConfig.from_inputs(inputs)
    login_config.validate()

    set_user_agent()

    runner = CommandRunner()
    AzureCliLogin(login_config, runner).login()

    if login_config.enable_ps_session:
        AzPSLogin(login_config, runner).login()

    print("Login successful.", file=sys.stderr)


def _parser(config, description):
    cfg = partial(config.get, "CLI")
    parser = argparse.ArgumentParser(
        allow_abbrev=False,
        formatter_class=RawAndDefaultsFormatter,
        description=description,
    )
    parser.add_argument(
        "--log-level",
        default=cfg("log_level", type=Choice(*LOG_LEVELS), default="INFO"),
        choices=LOG_LEVELS,
        help="set the logging level",
    )
    parser.add_argument(
        "--version", action="version", version="%(prog)s " + __version__
    )
    return parser


def _setup_logging(level):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


if __name__ == "__main__":
    main()
