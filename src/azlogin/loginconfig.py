#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""The login configuration shared by the Azure CLI and PowerShell logins.

## Overview

A `LoginConfig` is built once per job, usually with `LoginConfig.from_inputs`,
and then validated with `LoginConfig.validate`. The login orchestrators trust
a validated config and do not check it again.

## Inputs

The following inputs are recognized. See `azlogin.inputs` for where they are
read from.

`auth-type`
:  `SERVICE_PRINCIPAL` (default) or `IDENTITY`, case-insensitive.

`creds`
:  A JSON document with the keys `clientId`, `clientSecret`, `tenantId`,
`subscriptionId` and, for Azure Stack, `resourceManagerEndpointUrl`. This is
the output of `az ad sp create-for-rbac --sdk-auth`.

`client-id`, `tenant-id`, `subscription-id`
:  Override the values in `creds`. With `IDENTITY`, a `client-id` selects a
user-assigned managed identity; without one, the system-assigned identity is
used.

`certificate-path`
:  A PEM file holding the service principal's certificate and private key.

`federated-token`, `federated-token-file`
:  An OIDC token, or the file holding one, for workload identity federation.
`AZURE_FEDERATED_TOKEN_FILE` is consulted if neither is set.

`environment`
:  The Azure cloud: `azurecloud` (default), `azurechinacloud`,
`azureusgovernment`, `azuregermancloud` or `azurestack`.

`allow-no-subscriptions`, `enable-AzPSSession`
:  `true` or `false`.

## Service Principal Credentials

A service principal logs in with a secret if `creds` contains `clientSecret`,
otherwise with a certificate if `certificate-path` is set, otherwise with a
federated token.
"""

import json
import logging
import os
from pathlib import Path

from azlogin.inputs import is_true

LOG = logging.getLogger(__name__)

AUTH_TYPE_SERVICE_PRINCIPAL = "SERVICE_PRINCIPAL"
AUTH_TYPE_IDENTITY = "IDENTITY"
AUTH_TYPES = (AUTH_TYPE_SERVICE_PRINCIPAL, AUTH_TYPE_IDENTITY)

CREDENTIAL_SECRET = "secret"
CREDENTIAL_CERTIFICATE = "certificate"
CREDENTIAL_FEDERATED = "federated"

AZURE_STACK = "azurestack"

ENVIRONMENTS = (
    "azurecloud",
    "azurechinacloud",
    "azureusgovernment",
    "azuregermancloud",
    AZURE_STACK,
)

FEDERATED_TOKEN_FILE_VAR = "AZURE_FEDERATED_TOKEN_FILE"


class LoginConfigError(ValueError):
    """Raised when the login inputs are missing or inconsistent."""


class LoginConfig:
    """All of the settings needed to log into Azure for a single job."""

    # pylint: disable=too-many-instance-attributes

    def __init__(self):
        self.auth_type = AUTH_TYPE_SERVICE_PRINCIPAL
        self.service_principal_id = ""
        self.service_principal_secret = ""
        self.certificate_path = ""
        self.federated_token = ""
        self.tenant_id = ""
        self.subscription_id = ""
        self.environment = "azurecloud"
        self.resource_manager_endpoint_url = ""
        self.allow_no_subscriptions = False
        self.enable_ps_session = False

    @classmethod
    def from_inputs(cls, inputs, environ=None):
        """Returns a `LoginConfig` built from an `azlogin.inputs.Inputs`.

        Raises `LoginConfigError` if `creds` is not a JSON object or if a
        federated token file cannot be read. The returned config has not been
        validated yet.
        """
        environ = os.environ if environ is None else environ
        config = cls()

        creds = _parse_creds(inputs.get("creds"))

        config.auth_type = inputs.get("auth-type", AUTH_TYPE_SERVICE_PRINCIPAL).upper()
        config.service_principal_id = inputs.get("client-id") or creds.get("clientId", "")
        config.service_principal_secret = creds.get("clientSecret", "")
        config.tenant_id = inputs.get("tenant-id") or creds.get("tenantId", "")
        config.subscription_id = inputs.get("subscription-id") or creds.get(
            "subscriptionId", ""
        )
        config.resource_manager_endpoint_url = creds.get("resourceManagerEndpointUrl", "")
        config.certificate_path = inputs.get("certificate-path")
        config.environment = inputs.get("environment", "azurecloud").lower()
        config.allow_no_subscriptions = is_true(inputs.get("allow-no-subscriptions"))
        config.enable_ps_session = is_true(inputs.get("enable-AzPSSession"))

        config.federated_token = inputs.get("federated-token")
        if (
            config.auth_type == AUTH_TYPE_SERVICE_PRINCIPAL
            and not config.federated_token
            and not config.service_principal_secret
            and not config.certificate_path
        ):
            token_file = inputs.get("federated-token-file") or environ.get(
                FEDERATED_TOKEN_FILE_VAR, ""
            )
            if token_file:
                config.federated_token = _read_token_file(token_file)

        LOG.info(
            "auth type %s in %s using %s",
            config.auth_type,
            config.environment,
            config.flow_name(),
        )
        return config

    def sp_credential_kind(self):
        """Returns which credential a service principal logs in with."""
        if self.service_principal_secret:
            return CREDENTIAL_SECRET
        if self.certificate_path:
            return CREDENTIAL_CERTIFICATE
        return CREDENTIAL_FEDERATED

    def is_user_assigned_identity(self):
        """Returns true if logging in as a user-assigned managed identity."""
        return self.auth_type == AUTH_TYPE_IDENTITY and bool(self.service_principal_id)

    def flow_name(self):
        """Returns a short description of the login flow, for logs."""
        if self.auth_type == AUTH_TYPE_IDENTITY:
            if self.is_user_assigned_identity():
                return "user-assigned managed identity"
            return "system-assigned managed identity"
        return f"service principal with {self.sp_credential_kind()}"

    def validate(self):
        """Raises `LoginConfigError` unless the config can be used to log in."""
        if self.auth_type not in AUTH_TYPES:
            raise LoginConfigError(
                f"'{self.auth_type}' is not a valid auth-type, "
                f"must be one of {', '.join(AUTH_TYPES)}"
            )

        if self.environment not in ENVIRONMENTS:
            raise LoginConfigError(
                f"Unsupported value '{self.environment}' for environment, "
                f"must be one of {', '.join(ENVIRONMENTS)}"
            )

        if self.environment == AZURE_STACK and not self.resource_manager_endpoint_url:
            raise LoginConfigError(
                "resourceManagerEndpointUrl is required in creds for azurestack"
            )

        if self.auth_type == AUTH_TYPE_SERVICE_PRINCIPAL:
            if not (self.service_principal_id and self.tenant_id):
                raise LoginConfigError(
                    "Ensure 'client-id' and 'tenant-id' are supplied, "
                    "either as inputs or in 'creds'"
                )
            if (
                self.sp_credential_kind() == CREDENTIAL_FEDERATED
                and not self.federated_token
            ):
                raise LoginConfigError(
                    "A service principal needs a clientSecret in 'creds', a "
                    "'certificate-path', or a federated token"
                )
            if (
                self.sp_credential_kind() == CREDENTIAL_CERTIFICATE
                and not Path(self.certificate_path).is_file()
            ):
                raise LoginConfigError(
                    f"Certificate file not found: {self.certificate_path}"
                )

        if not self.subscription_id and not self.allow_no_subscriptions:
            raise LoginConfigError(
                "Ensure 'subscription-id' is supplied or "
                "'allow-no-subscriptions' is true"
            )


def _parse_creds(text):
    if not text:
        return {}
    try:
        creds = json.loads(text)
    except json.JSONDecodeError as e:
        raise LoginConfigError(f"'creds' is not valid JSON: {e.msg}") from e
    if not isinstance(creds, dict):
        raise LoginConfigError("'creds' must be a JSON object")
    return {k: str(v).strip() for k, v in creds.items() if v is not None}


def _read_token_file(filename):
    try:
        return Path(filename).read_text(encoding="utf-8").strip()
    except OSError as e:
        raise LoginConfigError(
            f"Cannot read federated token file {filename}: {e.strerror}"
        ) from e
