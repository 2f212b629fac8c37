"""Executable BDD harness.

Every scenario under specs/bdd runs the real CLI in a subprocess and checks
the JSON envelope it prints.
"""

from __future__ import annotations

from pytest_bdd import scenarios

scenarios("../../specs/bdd")
