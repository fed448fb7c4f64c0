#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Looks up CI job inputs.

A CI system such as GitHub Actions hands the parameters of a step to the process
as environment variables named `INPUT_<NAME>`, where `<NAME>` is the input name
upper-cased with spaces replaced by underscores. Hyphens are kept, so the input
`client-id` arrives as `INPUT_CLIENT-ID`.

`Inputs` layers three sources, first match wins:

1. explicit overrides, typically the parsed command line flags;
2. the `INPUT_<NAME>` environment variables;
3. the `Inputs` section of the user configuration (`azlogin.config.Config`).

Values are always returned as stripped strings, the same way the Actions toolkit
reads inputs. An unset input is the empty string.
"""

import logging
import os

from azlogin.config import Config, Dict, Scalars, Str

LOG = logging.getLogger(__name__)


def env_name(name):
    """Returns the environment variable that carries the input `name`."""
    return "INPUT_" + name.replace(" ", "_").upper()


def is_true(text):
    """Returns true only if `text` is the case-insensitive string "true".

    No whitespace is stripped here: `"TRUE"` is true, `"True "` is not. Values
    obtained through `Inputs.get` have already been stripped.
    """
    return str(text).lower() == "true"


class Inputs:
    """Reads named CI job inputs from overrides, environment, and config file.

    Raises `TypeError` if the `Inputs` section of `config` is not a mapping of
    names to scalar values.
    """

    def __init__(self, config=None, environ=None, overrides=None):
        config = config if config is not None else Config({})
        self.defaults = config.get("Inputs", type=Dict(Str, Scalars)) or {}
        self.environ = environ if environ is not None else os.environ
        self.overrides = overrides or {}

    def get(self, name, default=""):
        """Returns the stripped value of input `name` or `default` if unset."""
        # The CI system exports every declared input, so an empty value counts
        # as unset and falls through to the next source.
        lookups = [
            ("override", lambda: self.overrides.get(name)),
            ("environment", lambda: self.environ.get(env_name(name))),
            ("config", lambda: self.defaults.get(name)),
        ]

        for source, lookup in lookups:
            value = lookup()
            if value is None:
                continue

            # YAML may hand us a bool or an int, e.g. `enable-AzPSSession: true`
            value = str(value).strip()
            if value:
                LOG.debug("input %s read from %s", name, source)
                return value

        return default
