#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#

# pylint: disable=redefined-outer-name,missing-docstring

import json

import pytest

from azlogin.config import Config
from azlogin.inputs import Inputs
from azlogin.loginconfig import (
    AUTH_TYPE_IDENTITY,
    AUTH_TYPE_SERVICE_PRINCIPAL,
    CREDENTIAL_CERTIFICATE,
    CREDENTIAL_FEDERATED,
    CREDENTIAL_SECRET,
    LoginConfig,
    LoginConfigError,
)

CREDS = json.dumps(
    {
        "clientId": "creds-client",
        "clientSecret": "creds-secret",
        "tenantId": "creds-tenant",
        "subscriptionId": "creds-sub",
    }
)


def from_env(**env):
    environ = {f"INPUT_{k.replace('_', '-').upper()}": v for k, v in env.items()}
    return LoginConfig.from_inputs(Inputs(Config({}), environ=environ), environ=environ)


def test_defaults():
    config = from_env()
    assert config.auth_type == AUTH_TYPE_SERVICE_PRINCIPAL
    assert config.environment == "azurecloud"
    assert config.allow_no_subscriptions is False
    assert config.enable_ps_session is False


def test_creds_are_parsed():
    config = from_env(creds=CREDS)
    assert config.service_principal_id == "creds-client"
    assert config.service_principal_secret == "creds-secret"
    assert config.tenant_id == "creds-tenant"
    assert config.subscription_id == "creds-sub"
    assert config.sp_credential_kind() == CREDENTIAL_SECRET


def test_inputs_override_creds():
    config = from_env(
        creds=CREDS, client_id="input-client", tenant_id="input-tenant", subscription_id="input-sub"
    )
    assert config.service_principal_id == "input-client"
    assert config.tenant_id == "input-tenant"
    assert config.subscription_id == "input-sub"
    assert config.service_principal_secret == "creds-secret"


def test_creds_with_null_values():
    config = from_env(creds='{"clientId": "id", "clientSecret": null}')
    assert config.service_principal_secret == ""
    assert config.sp_credential_kind() == CREDENTIAL_FEDERATED


@pytest.mark.parametrize("creds", ["{not json", "[1, 2]", '"a string"'])
def test_bad_creds(creds):
    with pytest.raises(LoginConfigError):
        from_env(creds=creds)


def test_normalization():
    config = from_env(
        auth_type="identity",
        environment="AzureUSGovernment",
        allow_no_subscriptions="TRUE",
        enable_AzPSSession="True",
    )
    assert config.auth_type == AUTH_TYPE_IDENTITY
    assert config.environment == "azureusgovernment"
    assert config.allow_no_subscriptions is True
    assert config.enable_ps_session is True


def test_federated_token_from_file(tmp_path):
    token_file = tmp_path / "token"
    token_file.write_text("eyJ0eXAi\n")
    config = from_env(client_id="id", federated_token_file=str(token_file))
    assert config.federated_token == "eyJ0eXAi"
    assert config.sp_credential_kind() == CREDENTIAL_FEDERATED


def test_federated_token_from_workload_identity_env(tmp_path):
    token_file = tmp_path / "token"
    token_file.write_text("from-env")
    environ = {"AZURE_FEDERATED_TOKEN_FILE": str(token_file)}
    config = LoginConfig.from_inputs(Inputs(Config({}), environ={}), environ=environ)
    assert config.federated_token == "from-env"


def test_federated_token_input_wins_over_file(tmp_path):
    token_file = tmp_path / "token"
    token_file.write_text("from-file")
    config = from_env(federated_token="direct", federated_token_file=str(token_file))
    assert config.federated_token == "direct"


def test_unreadable_token_file(tmp_path):
    with pytest.raises(LoginConfigError):
        from_env(federated_token_file=str(tmp_path / "missing"))


def test_identity_ignores_token_file(tmp_path):
    config = from_env(auth_type="IDENTITY", federated_token_file=str(tmp_path / "missing"))
    assert config.federated_token == ""


@pytest.mark.parametrize(
    "inputs, kind",
    [
        ({"creds": CREDS}, CREDENTIAL_SECRET),
        ({"client-id": "id", "certificate-path": "cert.pem"}, CREDENTIAL_CERTIFICATE),
    ],
)
def test_secret_and_certificate_ignore_token_file(tmp_path, inputs, kind):
    environ = {"AZURE_FEDERATED_TOKEN_FILE": str(tmp_path / "missing")}
    config = LoginConfig.from_inputs(Inputs(Config({"Inputs": inputs}), environ={}), environ=environ)
    assert config.federated_token == ""
    assert config.sp_credential_kind() == kind


def test_certificate_kind(tmp_path):
    config = from_env(client_id="id", certificate_path=str(tmp_path / "cert.pem"))
    assert config.sp_credential_kind() == CREDENTIAL_CERTIFICATE


@pytest.mark.parametrize(
    "auth_type, client_id, user_assigned, flow",
    [
        (AUTH_TYPE_IDENTITY, "uami", True, "user-assigned managed identity"),
        (AUTH_TYPE_IDENTITY, "", False, "system-assigned managed identity"),
        (AUTH_TYPE_SERVICE_PRINCIPAL, "sp", False, "service principal with federated"),
    ],
)
def test_flow_selection(auth_type, client_id, user_assigned, flow):
    config = LoginConfig()
    config.auth_type = auth_type
    config.service_principal_id = client_id
    assert config.is_user_assigned_identity() is user_assigned
    assert config.flow_name() == flow


def valid_sp():
    config = LoginConfig()
    config.service_principal_id = "id"
    config.tenant_id = "tenant"
    config.subscription_id = "sub"
    config.service_principal_secret = "secret"
    return config


def valid_identity():
    config = LoginConfig()
    config.auth_type = AUTH_TYPE_IDENTITY
    config.subscription_id = "sub"
    return config


@pytest.mark.parametrize("factory", [valid_sp, valid_identity])
def test_validate_ok(factory):
    factory().validate()


def test_validate_certificate_must_exist(tmp_path):
    config = valid_sp()
    config.service_principal_secret = ""
    config.certificate_path = str(tmp_path / "cert.pem")
    with pytest.raises(LoginConfigError, match="Certificate file not found"):
        config.validate()

    (tmp_path / "cert.pem").write_text("-----BEGIN CERTIFICATE-----")
    config.validate()


@pytest.mark.parametrize(
    "factory, field, value, message",
    [
        (valid_sp, "auth_type", "PASSWORD", "not a valid auth-type"),
        (valid_sp, "environment", "azuremooncloud", "Unsupported value"),
        (valid_sp, "environment", "azurestack", "resourceManagerEndpointUrl"),
        (valid_sp, "service_principal_id", "", "client-id"),
        (valid_sp, "tenant_id", "", "tenant-id"),
        (valid_sp, "service_principal_secret", "", "federated token"),
        (valid_sp, "subscription_id", "", "subscription-id"),
        (valid_identity, "subscription_id", "", "allow-no-subscriptions"),
    ],
)
def test_validate_errors(factory, field, value, message):
    config = factory()
    setattr(config, field, value)
    with pytest.raises(LoginConfigError, match=message):
        config.validate()


def test_validate_allow_no_subscriptions():
    config = valid_identity()
    config.subscription_id = ""
    config.allow_no_subscriptions = True
    config.validate()


def test_validate_error_is_a_value_error():
    config = valid_sp()
    config.tenant_id = ""
    with pytest.raises(ValueError):
        config.validate()
