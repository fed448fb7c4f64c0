#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Log a CI job runner into Azure using the installed Azure CLI and PowerShell.

## Overview

`azlogin` is both a CLI and a small library to authenticate a CI job against
Azure. It does not talk to Azure itself. Instead, it builds the right command
lines for the Azure CLI (`az`) and, optionally, for Azure PowerShell (`pwsh`
with the `Az.Accounts` module), and runs them. When the job ends, a cleanup
routine removes the cached credentials again.

### CLI Usage

Two console scripts are installed:

`azlogin`
:  Logs into Azure. Inputs are read from command line flags, from
`INPUT_<NAME>` environment variables (as set by GitHub Actions), or from the
`Inputs` section of the user configuration file. See `azlogin.cli`.

`azlogin-cleanup`
:  Removes cached Azure CLI credentials and, if `enable-AzPSSession` is
`true`, the Az PowerShell contexts. It never fails the job.

### Library Usage

The same flows can be used from Python directly:

    from azlogin.loginconfig import LoginConfig
    from azlogin.login.azcli import AzureCliLogin
    from azlogin.cleanup import cleanup

    config = LoginConfig.from_inputs(my_inputs)
    config.validate()
    AzureCliLogin(config).login()
    ...
    cleanup(config.enable_ps_session)

Of particular interest to library users:

`azlogin.loginconfig`
:  The `LoginConfig` record consumed by both login orchestrators.

`azlogin.version`
:  The version-gated selection of `--client-id` versus `--username` for
user-assigned managed identity logins.

`azlogin.cleanup`
:  The best-effort teardown sequence.
"""

name = "azlogin"
__version__ = "2.3.0"
