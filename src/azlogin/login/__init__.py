#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Login orchestrators for the supported Azure command line tools.

`azlogin.login.azcli`
:  Logs the Azure CLI in with `az login`. This always runs.

`azlogin.login.azps`
:  Logs Azure PowerShell in with `Connect-AzAccount`. This runs only when the
`enable-AzPSSession` input is `true`.

Both take a validated `azlogin.loginconfig.LoginConfig` and an optional
`azlogin.process.CommandRunner`. Neither retries; a failed login raises.
"""
