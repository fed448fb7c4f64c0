#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Logs the Azure CLI into Azure.

## Overview

`AzureCliLogin` turns a `azlogin.loginconfig.LoginConfig` into a sequence of
`az` invocations:

1. `az --version`, to learn which flags the installed CLI understands;
2. `az cloud set` (and `az cloud register` for Azure Stack);
3. `az login`, with arguments for the selected flow;
4. `az account set`, when a subscription was given.

The `az login` arguments for each flow are:

    service principal, secret      --service-principal --username ID --tenant T --password=SECRET
    service principal, certificate --service-principal --username ID --tenant T --certificate PATH
    service principal, federated   --service-principal --username ID --tenant T --federated-token TOKEN
    system-assigned identity       --identity
    user-assigned identity         --identity --client-id ID    (az >= 2.69.0)
                                   --identity --username ID     (older or unknown)

Any failing `az` command raises `azlogin.process.CommandError`. There are no
retries.

## Testing

The `az_version` attribute may be set before calling `login` or any of the
`login_with_*` methods, in which case `az --version` is not run.
"""

import logging
import re
from urllib.parse import urlparse

from azlogin.loginconfig import (
    AUTH_TYPE_IDENTITY,
    AZURE_STACK,
    CREDENTIAL_CERTIFICATE,
    CREDENTIAL_SECRET,
)
from azlogin.process import CommandRunner
from azlogin.version import add_identity_client_arg

LOG = logging.getLogger(__name__)

AZ = "az"

AZURE_STACK_PROFILE = "2019-03-01-hybrid"

_VERSION_RE = re.compile(r"azure-cli\s+\(?([0-9][^\s)*]*)")


class AzureCliLogin:
    """Logs the Azure CLI in using the flow selected by `config`."""

    def __init__(self, config, runner=None):
        self.config = config
        self.runner = runner if runner is not None else CommandRunner()
        self.az_version = None

    def login(self):
        """Runs the full Azure CLI login sequence."""
        LOG.info("logging in to Azure CLI using %s", self.config.flow_name())
        self.runner.which(AZ)

        if not self.az_version:
            self.az_version = self.query_version()
        LOG.info("Azure CLI version: %s", self.az_version)

        self.set_cloud()

        if self.config.auth_type == AUTH_TYPE_IDENTITY:
            self.login_with_managed_identity()
        else:
            self.login_with_service_principal()

        if self.config.subscription_id:
            self.set_subscription()

        LOG.info("Azure CLI login succeeded")

    def query_version(self):
        """Returns the version of the installed Azure CLI from `az --version`."""
        result = self.runner.run(AZ, ["--version"])
        match = _VERSION_RE.search(result.stdout or "")
        if not match:
            raise RuntimeError("Failed to parse the Azure CLI version from 'az --version'")
        return match.group(1)

    def set_cloud(self):
        """Points the Azure CLI at the configured cloud."""
        if self.config.environment == AZURE_STACK:
            self.register_azure_stack()
        LOG.info("setting Azure CLI cloud to %s", self.config.environment)
        self._az("cloud", "set", "-n", self.config.environment)

    def register_azure_stack(self):
        """Registers the Azure Stack cloud, replacing a prior registration."""
        result = self.runner.run(
            AZ, ["cloud", "list", "--query", "[].name", "--output", "tsv"]
        )
        names = {n.strip().lower() for n in (result.stdout or "").splitlines()}
        if AZURE_STACK in names:
            LOG.debug("unregistering existing %s cloud", AZURE_STACK)
            self._az("cloud", "set", "-n", "AzureCloud")
            self._az("cloud", "unregister", "-n", AZURE_STACK)

        suffix = _endpoint_suffix(self.config.resource_manager_endpoint_url)
        LOG.info("registering %s cloud with suffix %s", AZURE_STACK, suffix)
        self._az(
            "cloud",
            "register",
            "-n",
            AZURE_STACK,
            "--endpoint-resource-manager",
            self.config.resource_manager_endpoint_url,
            "--suffix-keyvault-dns",
            f".vault.{suffix}",
            "--suffix-storage-endpoint",
            suffix,
            "--profile",
            AZURE_STACK_PROFILE,
        )

    def login_with_service_principal(self):
        args = [
            "--service-principal",
            "--username",
            self.config.service_principal_id,
            "--tenant",
            self.config.tenant_id,
        ]

        kind = self.config.sp_credential_kind()
        if kind == CREDENTIAL_SECRET:
            # The = form keeps secrets that start with a dash from being
            # parsed as flags.
            args.append(f"--password={self.config.service_principal_secret}")
        elif kind == CREDENTIAL_CERTIFICATE:
            args.extend(["--certificate", self.config.certificate_path])
        else:
            args.extend(["--federated-token", self.config.federated_token])

        LOG.debug("service principal login with %s", kind)
        self._login(args)

    def login_with_managed_identity(self):
        args = ["--identity"]
        if self.config.is_user_assigned_identity():
            self.login_with_user_assigned_identity(args)
        else:
            self.login_with_system_assigned_identity(args)

    def login_with_system_assigned_identity(self, args):
        LOG.info("logging in with system-assigned managed identity")
        self._login(args)

    def login_with_user_assigned_identity(self, args):
        """Appends the version-appropriate client ID flag to `args` and logs in.

        `args` is modified in place and should already contain `--identity`.
        """
        LOG.info(
            "logging in with user-assigned managed identity %s",
            self.config.service_principal_id,
        )
        add_identity_client_arg(args, self.config.service_principal_id, self.az_version)
        self._login(args)

    def set_subscription(self):
        LOG.info("setting subscription %s", self.config.subscription_id)
        self._az(
            "account", "set", "--subscription", self.config.subscription_id
        )

    def _login(self, args):
        login_args = ["login"] + args
        if self.config.allow_no_subscriptions:
            login_args.append("--allow-no-subscriptions")
        self._az(*login_args)

    def _az(self, *args):
        return self.runner.run(AZ, list(args) + ["--output", "none"])


def clear_cli_accounts(runner):
    """Removes all cached Azure CLI accounts with `az account clear`."""
    runner.which(AZ)
    LOG.info("clearing Azure CLI accounts")
    runner.run(AZ, ["account", "clear"])


def _endpoint_suffix(url):
    # https://management.local.azurestack.external/ -> local.azurestack.external
    host = urlparse(url).hostname or url.strip("/")
    return host.split(".", 1)[1] if "." in host else host
