"""CLI generator -- build a command tree from a schema registry.

This sub-package is the second half of the autocli pipeline: taking a
:class:`~autocli.schema.registry.SchemaRegistry` and constructing the
``query`` / ``tx`` command hierarchy, then attaching it additively to a
:class:`typer.Typer` application.

Typical usage::

    from autocli.generator import attach_command_tree, build_command_tree

    tree = build_command_tree(registry, strict=False)
    attach_command_tree(app, tree, runtime)
    app()

Sub-modules:

* :mod:`~autocli.generator.naming` -- kebab-case command and flag names,
  Python parameter names and default module names.
* :mod:`~autocli.generator.options` -- merge schema-derived defaults with
  per-method command options, apply skip and version gates.
* :mod:`~autocli.generator.bindings` -- bind fields to flags and
  positional slots, detect collisions.
* :mod:`~autocli.generator.command_tree` -- build, merge and realise the
  tree with dynamically generated command functions.
"""

from autocli.generator.bindings import GeneratedCommand, bind_arguments
from autocli.generator.command_tree import (
    CommandNode,
    CommandTreeBuilder,
    attach_command_tree,
    build_command_tree,
    describe_typer,
    merge_trees,
)
from autocli.generator.options import EffectiveOptions, resolve_options

__all__ = [
    "CommandNode",
    "CommandTreeBuilder",
    "EffectiveOptions",
    "GeneratedCommand",
    "attach_command_tree",
    "bind_arguments",
    "build_command_tree",
    "describe_typer",
    "merge_trees",
    "resolve_options",
]
