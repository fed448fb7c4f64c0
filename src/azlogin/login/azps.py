#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Logs Azure PowerShell into Azure.

`AzPSLogin` generates a short PowerShell script around `Connect-AzAccount` and
runs it with `pwsh`. The script reports its outcome as a single line of JSON,
`{"Success": true, "Result": ...}` or `{"Success": false, "Error": ...}`, which
is what decides whether the login worked. The exit code of `pwsh` alone is not
reliable for this.

On hosted runners the Az modules live in versioned directories such as
`/usr/share/az_12.1.0`. The newest one is put in front of `PSModulePath` before
the script runs.
"""

import json
import logging
import os
import re
from pathlib import Path

from azlogin.loginconfig import (
    AUTH_TYPE_IDENTITY,
    AZURE_STACK,
    CREDENTIAL_CERTIFICATE,
    CREDENTIAL_SECRET,
)
from azlogin.process import CommandRunner

LOG = logging.getLogger(__name__)

PWSH = "pwsh"

PWSH_ARGS = ["-NoLogo", "-NoProfile", "-NonInteractive", "-Command"]

MODULE_ROOT = "/usr/share"

PS_ENVIRONMENTS = {
    "azurecloud": "AzureCloud",
    "azurechinacloud": "AzureChinaCloud",
    "azureusgovernment": "AzureUSGovernment",
    "azuregermancloud": "AzureGermanCloud",
    AZURE_STACK: "AzureStack",
}

CLEAR_CONTEXT_SCRIPT = (
    "Clear-AzContext -Scope Process; "
    "Clear-AzContext -Scope CurrentUser -Force -ErrorAction SilentlyContinue"
)

SCRIPT_TEMPLATE = """\
$ErrorActionPreference = 'Stop'
$WarningPreference = 'SilentlyContinue'
$output = @{{}}
try {{
    Import-Module -Name Az.Accounts
    Clear-AzContext -Scope Process | Out-Null
{setup}    $context = Connect-AzAccount {params}
    $output['Success'] = $true
    $output['Result'] = $context.Context.Account.Id
}}
catch {{
    $output['Success'] = $false
    $output['Error'] = $_.Exception.Message
}}
ConvertTo-Json $output -Compress
"""

_MODULE_DIR_RE = re.compile(r"^az_(\d+(?:\.\d+)*)$")


class AzPSLoginError(RuntimeError):
    """Raised when `Connect-AzAccount` reports a failure."""


def ps_quote(value):
    """Returns `value` as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


class AzPSLogin:
    """Logs Azure PowerShell in using the flow selected by `config`."""

    def __init__(self, config, runner=None, module_root=MODULE_ROOT, environ=None):
        self.config = config
        self.runner = runner if runner is not None else CommandRunner()
        self.module_root = Path(module_root)
        self.environ = os.environ if environ is None else environ

    def login(self):
        LOG.info("logging in to Azure PowerShell using %s", self.config.flow_name())
        self.runner.which(PWSH)
        self.set_module_path()

        result = self.runner.run(PWSH, PWSH_ARGS + [self.build_script()])
        status = parse_script_output(result.stdout)

        if not status.get("Success"):
            raise AzPSLoginError(
                f"Azure PowerShell login failed: {status.get('Error', 'unknown error')}"
            )
        LOG.info("Azure PowerShell login succeeded: %s", status.get("Result"))

    def set_module_path(self):
        """Prepends the newest `az_*` module directory to `PSModulePath`."""
        latest = latest_module_dir(self.module_root)
        if not latest:
            LOG.debug("no az_* module directory in %s", self.module_root)
            return

        current = self.environ.get("PSModulePath", "")
        if str(latest) in current.split(os.pathsep):
            return
        self.environ["PSModulePath"] = (
            f"{latest}{os.pathsep}{current}" if current else str(latest)
        )
        LOG.debug("PSModulePath=%s", self.environ["PSModulePath"])

    def build_script(self):
        """Returns the PowerShell login script for the configured flow."""
        setup = ""
        if self.config.environment == AZURE_STACK:
            setup = (
                "    Add-AzEnvironment -Name AzureStack -ARMEndpoint "
                f"{ps_quote(self.config.resource_manager_endpoint_url)} | Out-Null\n"
            )
        return SCRIPT_TEMPLATE.format(setup=setup, params=" ".join(self.connect_params()))

    def connect_params(self):
        """Returns the `Connect-AzAccount` parameters for the configured flow."""
        cfg = self.config
        params = ["-Environment", ps_quote(PS_ENVIRONMENTS[cfg.environment])]

        if cfg.auth_type == AUTH_TYPE_IDENTITY:
            params.append("-Identity")
            if cfg.is_user_assigned_identity():
                params += ["-AccountId", ps_quote(cfg.service_principal_id)]
        else:
            params += ["-ServicePrincipal", "-Tenant", ps_quote(cfg.tenant_id)]
            kind = cfg.sp_credential_kind()
            if kind == CREDENTIAL_SECRET:
                params += [
                    "-Credential",
                    "(New-Object System.Management.Automation.PSCredential("
                    f"{ps_quote(cfg.service_principal_id)}, "
                    f"(ConvertTo-SecureString {ps_quote(cfg.service_principal_secret)}"
                    " -AsPlainText -Force)))",
                ]
            elif kind == CREDENTIAL_CERTIFICATE:
                params += [
                    "-ApplicationId",
                    ps_quote(cfg.service_principal_id),
                    "-CertificatePath",
                    ps_quote(cfg.certificate_path),
                ]
            else:
                params += [
                    "-ApplicationId",
                    ps_quote(cfg.service_principal_id),
                    "-FederatedToken",
                    ps_quote(cfg.federated_token),
                ]

        if cfg.subscription_id:
            params += ["-Subscription", ps_quote(cfg.subscription_id)]

        return params


def latest_module_dir(root):
    """Returns the `az_*` directory under `root` with the highest version."""
    if not root.is_dir():
        return None

    candidates = []
    for path in root.iterdir():
        match = _MODULE_DIR_RE.match(path.name)
        if match and path.is_dir():
            version = tuple(int(n) for n in match.group(1).split("."))
            candidates.append((version, path))

    return max(candidates)[1] if candidates else None


def parse_script_output(stdout):
    """Returns the JSON status object printed last by the login script."""
    for line in reversed((stdout or "").splitlines()):
        line = line.strip()
        if line.startswith("{"):
            try:
                return json.loads(line)
            except json.JSONDecodeError as e:
                raise AzPSLoginError(
                    f"Cannot parse Azure PowerShell login output: {e.msg}"
                ) from e
    raise AzPSLoginError("Azure PowerShell login produced no status output")


def clear_ps_contexts(runner):
    """Removes the Az PowerShell contexts of this process and the current user."""
    runner.which(PWSH)
    LOG.info("clearing Azure PowerShell contexts")
    runner.run(PWSH, PWSH_ARGS + [CLEAR_CONTEXT_SCRIPT])
