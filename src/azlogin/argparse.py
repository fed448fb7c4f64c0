#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Provides formatters and input flags for the builtin argparse module."""

import argparse


class RawAndDefaultsFormatter(
    argparse.ArgumentDefaultsHelpFormatter, argparse.RawDescriptionHelpFormatter
):
    """Mixin of ArgumentDefaultsHelpFormatter and RawDescriptionHelpFormatter.

    The argparse module does not allow for easy combinations of help formatters.
    This class combines the raw formatter along with the default args formatter,
    which is used by the azlogin CLI.
    """


def input_flag(name):
    """Returns the command line flag for the CI input `name`.

        >>> input_flag('enable-AzPSSession')
        '--enable-azpssession'
    """
    return "--" + name.replace(" ", "-").replace("_", "-").lower()


def add_input_flags(parser, inputs, title="login inputs"):
    """Adds one flag per CI input to `parser` in its own argument group.

    `inputs` is a list of `(name, help)` tuples. Unused flags are left out of the
    parsed namespace, so `input_overrides` can tell which ones were passed. Returns
    a dict mapping each input name to its argparse `dest`.
    """
    group = parser.add_argument_group(
        title,
        "each flag overrides the INPUT_<NAME> environment variable and the "
        "Inputs section of the config file",
    )
    dests = {}
    for name, help_text in inputs:
        action = group.add_argument(
            input_flag(name), metavar="VALUE", default=argparse.SUPPRESS, help=help_text
        )
        dests[name] = action.dest
    return dests


def input_overrides(args, dests):
    """Returns a dict of input name to value for every flag present in `args`."""
    return {
        name: getattr(args, dest)
        for name, dest in dests.items()
        if getattr(args, dest, None) is not None
    }
