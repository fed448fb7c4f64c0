#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#

# pylint: disable=missing-docstring

import logging

import pytest

from azlogin.version import (
    PARSE_FAILURE_WARNING,
    add_identity_client_arg,
    parse_minor_version,
)


@pytest.mark.parametrize(
    "version, expected",
    [
        ("2.68.0", 68),
        ("2.69.0", 69),
        ("2.100.0", 100),
        ("2.0.0", 0),
        ("2.69", 69),
        ("2", None),
        ("", None),
        ("invalid-version", None),
        ("2..0", None),
        ("2.69-beta", None),
        ("2.-1.0", None),
        ("2. 69.0", None),
        (None, None),
    ],
)
def test_parse_minor_version(version, expected):
    assert parse_minor_version(version) == expected


@pytest.mark.parametrize(
    "version, flag",
    [
        ("2.68.0", "--username"),
        ("2.69.0", "--client-id"),
        ("2.70.0", "--client-id"),
        ("2.0.0", "--username"),
        ("2.9.0", "--username"),
        ("2.100.0", "--client-id"),
    ],
)
def test_flag_selected_by_numeric_minor_version(caplog, version, flag):
    args = ["--identity"]
    add_identity_client_arg(args, "test-client-id", version)
    assert args == ["--identity", flag, "test-client-id"]
    assert PARSE_FAILURE_WARNING not in caplog.text


@pytest.mark.parametrize("version", ["invalid-version", "2", "2.69-beta", "", None])
def test_unparseable_version_falls_back_to_username(caplog, version):
    args = ["--identity"]
    with caplog.at_level(logging.WARNING, logger="azlogin.version"):
        add_identity_client_arg(args, "test-client-id", version)

    assert args == ["--identity", "--username", "test-client-id"]
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert warnings[0].getMessage() == (
        "Failed to parse the minor version of Azure CLI. "
        "Assuming the version is less than 2.69.0"
    )


def test_appends_exactly_two_elements_and_keeps_existing_ones():
    args = ["--identity", "--allow-no-subscriptions"]
    assert add_identity_client_arg(args, "abc", "2.75.1") is None
    assert args == ["--identity", "--allow-no-subscriptions", "--client-id", "abc"]


def test_identifier_is_appended_verbatim():
    client_id = " Weird-ID with spaces "
    args = []
    add_identity_client_arg(args, client_id, "2.50.0")
    assert args[-1] is client_id
