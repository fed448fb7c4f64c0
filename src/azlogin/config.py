#
# Copyright 2019 FMR LLC <opensource@fidelity.com>
#
# SPDX-License-Identifier: MIT
#
"""Reads the azlogin user configuration file with type-checked values.

## Overview

The user configuration is a YAML or JSON document, located at the path named by
the `AZLOGIN_CONFIG` environment variable or `~/.azlogin.yaml` by default. It
provides fallback values for the login inputs when they are neither passed on
the command line nor exported as `INPUT_<NAME>` environment variables by the CI
system:

    Inputs:
      auth-type: IDENTITY
      client-id: 00000000-0000-0000-0000-000000000000
      subscription-id: 11111111-1111-1111-1111-111111111111
      enable-AzPSSession: true

    CLI:
      log_level: DEBUG

`Config.from_file` picks the parser based on the file extension. Values are read
with `Config.get`, which walks a list of keys and optionally type-checks the
result against one of the `Type` objects defined here:

    c = Config.from_file('~/.azlogin.yaml')
    c.get('CLI', 'log_level', type=Choice('DEBUG', 'INFO', 'WARN', 'ERROR'))
    c.get('Inputs', 'client-id', type=Str)

A value of the wrong type raises `TypeError`. A missing value returns the
`default`, unless `must_exist` is set, in which case `ValueError` is raised.
"""

import json
import logging
from functools import reduce
from pathlib import Path

import yaml

LOG = logging.getLogger(__name__)

# pylint: disable=unidiomatic-typecheck
#
# isinstance(True, int) is true, so exact type comparisons are used throughout
# this module. A YAML boolean must never satisfy Int, and vice versa.


class Config:
    """A `Config` reads type-checked values from a nested dictionary."""

    _filetypes = {}

    @classmethod
    def register_filetype(cls, config_class, *extensions):
        """Associate a `Config` subclass with one or more '.ext' extensions."""
        for ext in extensions:
            cls._filetypes[ext] = config_class

    @classmethod
    def from_file(cls, filename, must_exist=False):
        """Load a `Config` from `filename` using its extension to pick a parser.

        A missing file yields an empty `Config`, or raises `FileNotFoundError`
        if `must_exist` is true.
        """
        path = Path(filename).expanduser()

        if not path.is_file():
            if must_exist:
                raise FileNotFoundError(f"Config file not found: {filename}")
            LOG.debug("no config file at %s", path)
            return Config({})

        if path.suffix not in cls._filetypes:
            raise ValueError(f"Unregistered file type extension: {path.suffix}")

        LOG.debug("loading config file %s", path)
        with path.open(encoding="utf-8") as f:
            return cls._filetypes[path.suffix](f)

    def __init__(self, d):
        # An empty YAML document loads as None
        self.conf = d if d is not None else {}

    def get(self, *keys, default=None, type=None, must_exist=False):
        """Return the value found by following `keys` into the configuration.

        For example, `c.get('Inputs', 'client-id', type=Str)`. If the path does
        not exist, `default` is returned, or `ValueError` is raised when
        `must_exist` is true. If `type` is given and the value does not pass
        `type.type_check`, `TypeError` is raised.
        """
        # pylint: disable=redefined-builtin
        try:
            value = reduce(lambda a, k: a.get(k, {}), keys, self.conf)
        except AttributeError as e:
            raise ValueError(
                f"Error in config: {'->'.join(keys[:-1])}: not a dictionary"
            ) from e

        # {} is the marker for a missing key
        if value == {}:
            if must_exist:
                raise ValueError(f"Error in config: {'->'.join(keys)}: must be set")
            value = default

        if value is None or not type:
            return value

        if type.type_check(value):
            return value

        raise TypeError(
            f"Error in config: {'->'.join(keys)}: not a {type}: {repr(value)}"
        )


class YAMLConfig(Config):
    """Loads a YAML configuration from a stream."""

    def __init__(self, stream):
        super().__init__(yaml.safe_load(stream))


class JSONConfig(Config):
    """Loads a JSON configuration from a stream."""

    def __init__(self, stream):
        super().__init__(json.load(stream))


Config.register_filetype(JSONConfig, ".json")
Config.register_filetype(YAMLConfig, ".yaml", ".yml")


class Type:
    """Represents a type that can be used in type-check comparisons."""

    def type_check(self, obj):
        """Returns true if obj is a type matching this `Type`."""
        raise NotImplementedError

    def __str__(self):
        raise NotImplementedError


class Or(Type):
    """Matches if any of `config_types` matches, e.g. `Or(Str, Bool)`."""

    def __init__(self, *config_types):
        self.config_types = config_types

    def type_check(self, obj):
        return any(t.type_check(obj) for t in self.config_types)

    def __str__(self):
        return "(" + " or ".join(str(t) for t in self.config_types) + ")"


class Const(Type):
    """Matches a single constant of the same exact type."""

    def __init__(self, const):
        self.const = const

    def type_check(self, obj):
        # True == 1, so the types are compared first
        if type(obj) != type(self.const):  # noqa: E721
            return False
        return obj == self.const

    def __str__(self):
        return f"constant '{self.const}'"


class Choice(Or):
    """Matches one of the listed constants."""

    def __init__(self, *constants):
        super().__init__(*[Const(c) for c in constants])


class Scalar(Type):
    """Matches a builtin scalar type exactly, e.g. `Scalar(str)`."""

    def __init__(self, type_):
        self.type = type_

    def type_check(self, obj):
        return type(obj) == self.type  # noqa: E721

    def __str__(self):
        return self.type.__name__


class Dict(Type):
    """Matches a dict whose keys and values match `key_type` and `value_type`."""

    def __init__(self, key_type, value_type):
        self.key_type = key_type
        self.value_type = value_type

    def type_check(self, obj):
        if type(obj) != dict:  # noqa: E721
            return False
        return all(self.key_type.type_check(k) for k in obj) and all(
            self.value_type.type_check(v) for v in obj.values()
        )

    def __str__(self):
        return f"dict with {self.key_type} keys and {self.value_type} values"


Str = Scalar(str)
"""Singleton representing a str."""

Int = Scalar(int)
"""Singleton representing an int."""

Bool = Scalar(bool)
"""Singleton representing a bool."""

Scalars = Or(Str, Int, Bool, Const(None))
"""Singleton representing any value that can stand in for an input string."""
