"""Built-in CLI sub-commands for autocli.

This package groups the hand-written Typer sub-command modules that sit
next to the generated ``query`` / ``tx`` trees:

* :mod:`~autocli.commands.init` -- create a profile from a schema document.
* :mod:`~autocli.commands.inspect` -- examine services, methods, messages
  and the generated commands of a schema.
* :mod:`~autocli.commands.keys` -- manage the named addresses of the file
  keyring.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``inspect`` and ``keys``) or a plain callback
function registered directly on the root app (for ``init``).
"""
