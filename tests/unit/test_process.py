#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#

# pylint: disable=redefined-outer-name,missing-docstring

import logging
import subprocess

import pytest

from azlogin.process import CommandError, CommandRunner, redact


@pytest.fixture
def which(mocker):
    return mocker.patch(
        "azlogin.process.shutil.which", side_effect=lambda cmd: f"/usr/bin/{cmd}"
    )


@pytest.fixture
def run(mocker):
    return mocker.patch(
        "azlogin.process.subprocess.run",
        return_value=subprocess.CompletedProcess([], 0, stdout="out\n", stderr=""),
    )


@pytest.mark.parametrize(
    "args, expected",
    [
        (["login", "--identity"], ["login", "--identity"]),
        (["login", "--password=s3cret"], ["login", "--password=***"]),
        (["login", "--password", "s3cret", "--tenant", "t"], ["login", "--password", "***", "--tenant", "t"]),
        (["--federated-token", "eyJ"], ["--federated-token", "***"]),
        (["-p", "x"], ["-p", "***"]),
        (["-NoLogo", "-Command", "Connect-AzAccount ..."], ["-NoLogo", "-Command", "***"]),
        (["--username=bob"], ["--username=bob"]),
        (["--password"], ["--password"]),
    ],
)
def test_redact(args, expected):
    assert redact(args) == expected


def test_which_caches(which):
    runner = CommandRunner()
    assert runner.which("az") == "/usr/bin/az"
    assert runner.which("az") == "/usr/bin/az"
    which.assert_called_once_with("az")


def test_which_missing(mocker):
    mocker.patch("azlogin.process.shutil.which", return_value=None)
    with pytest.raises(FileNotFoundError, match="'pwsh' not found in PATH"):
        CommandRunner().which("pwsh")


def test_run_success(which, run):
    result = CommandRunner(timeout=30).run("az", ["account", "show"])
    assert result.stdout == "out\n"
    cmd = run.call_args.args[0]
    assert cmd == ["/usr/bin/az", "account", "show"]
    assert run.call_args.kwargs["timeout"] == 30
    assert run.call_args.kwargs["universal_newlines"] is True


def test_run_failure_raises(which, run):
    run.return_value = subprocess.CompletedProcess([], 2, stdout="", stderr="ERROR: bad\n")
    with pytest.raises(CommandError) as excinfo:
        CommandRunner().run("az", ["login"])

    assert excinfo.value.returncode == 2
    assert excinfo.value.command == "az"
    assert str(excinfo.value) == "'az' failed with exit code 2: ERROR: bad"


def test_run_failure_without_check(which, run):
    run.return_value = subprocess.CompletedProcess([], 3, stdout="", stderr="")
    assert CommandRunner().run("az", ["login"], check=False).returncode == 3


def test_run_does_not_log_secrets(which, run, caplog):
    with caplog.at_level(logging.DEBUG, logger="azlogin.process"):
        CommandRunner().run("az", ["login", "--password=hunter2", "--tenant", "t"])
    assert "hunter2" not in caplog.text
    assert "running az login --password=*** --tenant t" in caplog.text


def test_command_error_without_stderr():
    assert str(CommandError("pwsh", 1)) == "'pwsh' failed with exit code 1"
