"""Build the command tree from service command descriptors and attach it to Typer.

This is the core algorithm of autocli.  It runs in two stages:

**Build (pure)** -- :class:`CommandTreeBuilder` walks the
:class:`~autocli.models.ServiceCommandDescriptor` hierarchy and produces a
tree of :class:`CommandNode` objects:

1. One group node per descriptor, recursing into ``sub_commands``.
2. One leaf per method of the descriptor's service that is neither skipped
   nor gated out by version (see :mod:`autocli.generator.options`).
3. Each leaf carries a :class:`~autocli.generator.bindings.GeneratedCommand`
   with its positional slots and flags.

**Attach** -- :func:`attach_command_tree` describes an existing
:class:`typer.Typer` hierarchy as nodes (:func:`describe_typer`), merges the
generated tree into it additively (:func:`merge_trees`) and realises every
new node as a Typer group or command.  Each leaf command is a dynamically
generated function whose signature lists the command's arguments and
options, so Typer renders help and parses flags as for hand-written code.

Example::

    builder = CommandTreeBuilder(registry, app_version="0.50.0", strict=False)
    tree = CommandNode(name="autocli", children={
        "query": builder.build_modules(ServiceKind.QUERY),
        "tx": builder.build_modules(ServiceKind.TX),
    })
    attach_command_tree(app, tree, runtime)
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator, List, Optional

import typer
from typer.main import get_command_name
from typer.models import DefaultPlaceholder

from autocli.exceptions import AutocliError, ConfigurationError
from autocli.generator.bindings import GeneratedCommand, bind_arguments
from autocli.generator.naming import default_module_name, humanize
from autocli.generator.options import resolve_options
from autocli.models import ModuleOptions, ServiceCommandDescriptor, ServiceKind
from autocli.schema.registry import SchemaRegistry

if TYPE_CHECKING:
    from autocli.runtime import CommandRuntime

logger = logging.getLogger(__name__)

_ROOT_HELP = {
    ServiceKind.QUERY: "Query commands generated from the service schema.",
    ServiceKind.TX: (
        "Transaction commands generated from the service schema.\n\n"
        "Transactions are signed by the configured keyring. The default file "
        "keyring only records key names and addresses and cannot sign; use "
        "--dry-run to print the signed-over request instead, or configure a "
        "signing keyring."
    ),
}


# ---------------------------------------------------------------------------
# Tree nodes
# ---------------------------------------------------------------------------


@dataclass
class CommandNode:
    """One node of a command hierarchy.

    Group nodes have ``children``; leaf nodes either carry a generated
    ``command`` or, for hand-written commands found by
    :func:`describe_typer`, only a ``source``.  ``source`` is set on every
    node that already exists in the host application.
    """

    name: str
    help: Optional[str] = None
    children: dict[str, CommandNode] = field(default_factory=dict)
    command: Optional[GeneratedCommand] = None
    is_group: bool = True
    hidden: bool = False
    enhance: bool = False
    source: Any = None

    @property
    def is_custom(self) -> bool:
        return self.source is not None

    def find(self, *path: str) -> Optional[CommandNode]:
        node: Optional[CommandNode] = self
        for name in path:
            if node is None:
                return None
            node = node.children.get(name)
        return node

    def walk(self, prefix: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], CommandNode]]:
        """Yield ``(path, node)`` for every descendant, depth first."""
        for name, child in self.children.items():
            path = prefix + (name,)
            yield path, child
            yield from child.walk(path)

    def commands(self) -> list[GeneratedCommand]:
        """All generated leaf commands below this node (aliases excluded)."""
        return [
            node.command for _, node in self.walk()
            if node.command is not None and not node.hidden
        ]


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class CommandTreeBuilder:
    """Build :class:`CommandNode` trees for the services of a registry.

    Args:
        registry: The schema registry to reflect over.
        app_version: Running application version used for version gates;
            ``None`` disables gating.
        strict: When ``True`` (default) the first configuration error
            aborts the build.  When ``False`` the offending command is
            logged and omitted, and the rest of the tree is still built.
        signer_flag: Name of the flag bound to the signer field.
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        app_version: Optional[str] = None,
        strict: bool = True,
        signer_flag: str = "from",
    ) -> None:
        self._registry = registry
        self._app_version = app_version
        self._strict = strict
        self._signer_flag = signer_flag

    def build(
        self,
        descriptor: ServiceCommandDescriptor,
        name: str,
        parent_path: tuple[str, ...] = (),
    ) -> CommandNode:
        """Build the group *name* for *descriptor* and everything below it."""
        path = parent_path + (name,)
        node = CommandNode(
            name=name,
            help=descriptor.short,
            enhance=descriptor.enhance_custom_command,
        )

        if descriptor.service:
            if self._registry.has_service(descriptor.service):
                self._add_methods(node, descriptor, path)
            else:
                self._fail(ConfigurationError(
                    f"Command group '{' '.join(path)}' references unknown "
                    f"service '{descriptor.service}'"
                ))

        for sub_name, sub_descriptor in descriptor.sub_commands.items():
            if sub_name in node.children:
                self._fail(ConfigurationError(
                    f"Sub-command '{sub_name}' collides with a command in "
                    f"'{' '.join(path)}'"
                ))
                continue
            node.children[sub_name] = self.build(sub_descriptor, sub_name, path)

        if node.help is None:
            node.help = humanize(name)
        return node

    def build_modules(
        self,
        kind: ServiceKind,
        modules: Optional[dict[str, ModuleOptions]] = None,
    ) -> CommandNode:
        """Build the ``query`` or ``tx`` root with one group per module.

        Args:
            kind: Which descriptor of each module to use.
            modules: Module options; defaults to :meth:`module_options`.
        """
        root = CommandNode(name=kind.value, help=_ROOT_HELP[kind])
        if modules is None:
            modules = self.module_options()

        for module_name in sorted(modules):
            options = modules[module_name]
            descriptor = options.query if kind == ServiceKind.QUERY else options.tx
            if descriptor is None:
                continue
            group = self.build(descriptor, module_name, (kind.value,))
            if not group.children:
                logger.debug("Module %s has no %s commands", module_name, kind.value)
                continue
            root.children[module_name] = group
        return root

    def module_options(self) -> dict[str, ModuleOptions]:
        """Explicit module options completed with defaults for uncovered services."""
        modules = dict(self._registry.modules)
        covered = {
            service
            for options in modules.values()
            for descriptor in (options.query, options.tx)
            if descriptor is not None
            for service in _referenced_services(descriptor)
        }
        for name, defaults in default_module_options(self._registry).items():
            current = modules.get(name, ModuleOptions())
            query, tx = current.query, current.tx
            if defaults.query is not None and defaults.query.service not in covered:
                if query is None:
                    query = defaults.query
                else:
                    logger.debug("Module %s already has query options; not adding %s",
                                 name, defaults.query.service)
            if defaults.tx is not None and defaults.tx.service not in covered:
                if tx is None:
                    tx = defaults.tx
                else:
                    logger.debug("Module %s already has tx options; not adding %s",
                                 name, defaults.tx.service)
            modules[name] = ModuleOptions(query=query, tx=tx)
        return modules

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _add_methods(
        self,
        node: CommandNode,
        descriptor: ServiceCommandDescriptor,
        path: tuple[str, ...],
    ) -> None:
        service = self._registry.service(descriptor.service or "")
        for opts in descriptor.rpc_command_options:
            if service.method(opts.rpc_method) is None:
                self._fail(ConfigurationError(
                    f"Options given for unknown method '{opts.rpc_method}' "
                    f"of {service.name}"
                ))

        for method in service.methods:
            try:
                effective = resolve_options(
                    self._registry,
                    service,
                    method,
                    descriptor.options_for(method.name),
                    self._app_version,
                )
                if effective is None:
                    continue
                command = bind_arguments(self._registry, effective, self._signer_flag)
                self._place(node, command.at(path + (effective.name,)))
            except ConfigurationError as exc:
                self._fail(exc)

    def _place(self, node: CommandNode, command: GeneratedCommand) -> None:
        names = [command.name, *command.options.aliases]
        for name in names:
            if name in node.children:
                raise ConfigurationError(
                    f"Command '{name}' for {command.options.full_method} collides "
                    f"with another command in '{' '.join(command.path[:-1])}'"
                )
        node.children[command.name] = CommandNode(
            name=command.name,
            help=command.options.help,
            command=command,
            is_group=False,
            enhance=command.options.enhance_custom_command,
        )
        for alias in command.options.aliases:
            node.children[alias] = CommandNode(
                name=alias,
                help=command.options.help,
                command=command,
                is_group=False,
                hidden=True,
                enhance=command.options.enhance_custom_command,
            )

    def _fail(self, exc: ConfigurationError) -> None:
        if self._strict:
            raise exc
        logger.warning("Omitting command: %s", exc)


def default_module_options(registry: SchemaRegistry) -> dict[str, ModuleOptions]:
    """Default module options: one module per service package, all methods, no overrides.

    Example::

        # cosmos.bank.v1beta1.Query and cosmos.bank.v1beta1.Msg
        default_module_options(registry)["bank"]
        # ModuleOptions(query=ServiceCommandDescriptor(service="cosmos.bank.v1beta1.Query"),
        #               tx=ServiceCommandDescriptor(service="cosmos.bank.v1beta1.Msg"))
    """
    result: dict[str, ModuleOptions] = {}
    for service in registry.services():
        name = default_module_name(service.name)
        current = result.get(name, ModuleOptions())
        descriptor = ServiceCommandDescriptor(
            service=service.name,
            short=(service.description or "").strip().split("\n", 1)[0] or None,
        )
        if service.kind == ServiceKind.TX:
            if current.tx is not None:
                logger.debug("Module %s already has tx service %s; ignoring %s",
                             name, current.tx.service, service.name)
                continue
            current = ModuleOptions(query=current.query, tx=descriptor)
        else:
            if current.query is not None:
                logger.debug("Module %s already has query service %s; ignoring %s",
                             name, current.query.service, service.name)
                continue
            current = ModuleOptions(query=descriptor, tx=current.tx)
        result[name] = current
    return result


def build_command_tree(
    registry: SchemaRegistry,
    app_version: Optional[str] = None,
    strict: bool = True,
    name: str = "autocli",
) -> CommandNode:
    """Build a root node holding the ``query`` and ``tx`` trees of *registry*.

    Empty roots are left out.  *app_version* defaults to the registry's
    declared application version.
    """
    builder = CommandTreeBuilder(
        registry,
        app_version=app_version if app_version is not None else registry.app_version,
        strict=strict,
    )
    root = CommandNode(name=name)
    for kind in (ServiceKind.QUERY, ServiceKind.TX):
        child = builder.build_modules(kind)
        if child.children:
            root.children[kind.value] = child
    return root


def _referenced_services(descriptor: ServiceCommandDescriptor) -> Iterator[str]:
    if descriptor.service:
        yield descriptor.service
    for sub in descriptor.sub_commands.values():
        yield from _referenced_services(sub)


# ---------------------------------------------------------------------------
# Additive merge
# ---------------------------------------------------------------------------


def merge_trees(existing: CommandNode, generated: CommandNode) -> CommandNode:
    """Merge *generated* into *existing* without touching anything that exists.

    The two roots are merged unconditionally.  Below them:

    * a path free in *existing* receives the generated subtree;
    * a path occupied by an existing command is left as it is;
    * a path occupied by an existing group is left as it is unless the
      generated group has ``enhance`` set, in which case the generated
      children are merged in alongside the existing ones;
    * generated leaves that individually set ``enhance`` are added to an
      existing group even when their parent group does not.

    Neither input is modified.
    """
    result = dataclasses.replace(existing, children=dict(existing.children))
    for name, child in generated.children.items():
        current = result.children.get(name)
        if current is None:
            result.children[name] = child
        elif not current.is_group or not child.is_group:
            logger.debug("Keeping existing command '%s'; generated one not added", name)
        elif child.enhance:
            result.children[name] = merge_trees(current, child)
        else:
            extras = {
                key: node for key, node in child.children.items()
                if node.enhance and key not in current.children
            }
            if extras:
                merged = dataclasses.replace(current, children=dict(current.children))
                merged.children.update(extras)
                result.children[name] = merged
            else:
                logger.debug("Keeping existing command group '%s' as is", name)
    return result


# ---------------------------------------------------------------------------
# Typer integration
# ---------------------------------------------------------------------------


def describe_typer(app: typer.Typer, name: str = "") -> CommandNode:
    """Describe the commands and groups registered on *app* as nodes."""
    info_name = _unwrap(app.info.name)
    node = CommandNode(
        name=name or info_name or "",
        help=_unwrap(app.info.help),
        source=app,
    )
    for command_info in app.registered_commands:
        cmd_name = _unwrap(command_info.name)
        if not cmd_name and command_info.callback is not None:
            cmd_name = get_command_name(command_info.callback.__name__)
        if cmd_name:
            node.children[cmd_name] = CommandNode(
                name=cmd_name, is_group=False, source=command_info,
            )
    for group_info in app.registered_groups:
        sub_app = group_info.typer_instance
        group_name = _unwrap(group_info.name) or (
            _unwrap(sub_app.info.name) if sub_app is not None else None
        )
        if group_name and sub_app is not None:
            node.children[group_name] = describe_typer(sub_app, group_name)
    return node


def attach_command_tree(
    root: typer.Typer,
    tree: CommandNode,
    runtime: CommandRuntime,
) -> CommandNode:
    """Attach *tree* to the Typer application *root* additively.

    Existing commands and groups are never replaced (see
    :func:`merge_trees`).  Only nodes that are new after the merge are
    realised as Typer groups and commands.

    Returns:
        The merged tree, describing the complete command hierarchy.
    """
    merged = merge_trees(describe_typer(root, tree.name), tree)
    _realize_children(root, merged, runtime)
    return merged


def _realize_children(app: typer.Typer, node: CommandNode, runtime: CommandRuntime) -> None:
    for child in node.children.values():
        if child.is_custom:
            if child.is_group:
                _realize_children(child.source, child, runtime)
            continue
        _realize(app, child, runtime)


def _realize(parent: typer.Typer, node: CommandNode, runtime: CommandRuntime) -> None:
    if node.command is None:
        sub = typer.Typer(name=node.name, help=node.help, no_args_is_help=True)
        for child in node.children.values():
            _realize(sub, child, runtime)
        parent.add_typer(sub, name=node.name, hidden=node.hidden)
        return

    command = node.command
    options = command.options
    parent.command(
        name=node.name,
        help=_build_help_text(command),
        short_help=options.help,
        epilog=f"Example: {options.example}" if options.example else None,
        deprecated=options.deprecated is not None,
        hidden=node.hidden,
    )(_build_command_function(command, runtime))


def _unwrap(value: Any) -> Any:
    if isinstance(value, DefaultPlaceholder):
        return value.value
    return value


# ---------------------------------------------------------------------------
# Dynamic command function builder
# ---------------------------------------------------------------------------


def _build_command_function(
    command: GeneratedCommand,
    runtime: CommandRuntime,
) -> Callable[..., Any]:
    """Dynamically generate a Typer-compatible function for *command*.

    Positional slots become :func:`typer.Argument` parameters and every
    flag becomes a :func:`typer.Option`.  All values are declared as
    strings (or lists of strings) so that coercion happens in one place,
    the runtime, with the same rules for flags, positionals and defaults.

    The function source is built as a string, compiled, and executed into
    a namespace holding the parameter defaults and annotations, so that
    :mod:`inspect` (which Typer relies on) can read its signature.
    """
    func_name = f"_cmd_{'_'.join(p.replace('-', '_') for p in command.path) or command.name}"
    namespace: dict[str, Any] = {}
    sig_parts: list[str] = []
    param_names: list[str] = []

    def add(name: str, annotation: Any, default: Any) -> None:
        idx = len(sig_parts)
        namespace[f"_ann_{idx}"] = annotation
        namespace[f"_default_{idx}"] = default
        sig_parts.append(f"{name}: _ann_{idx} = _default_{idx}")
        param_names.append(name)

    for pos in command.positionals:
        # Zero varargs tokens is an empty repeated value, never a usage error.
        required = not pos.optional and not pos.varargs
        if pos.varargs:
            annotation: Any = Optional[List[str]]
        else:
            annotation = str if required else Optional[str]
        add(pos.param_name, annotation, typer.Argument(
            ... if required else None,
            metavar=pos.metavar,
            show_default=False,
        ))

    for flag in command.flags:
        decls = [flag.flag] + ([f"-{flag.shorthand}"] if flag.shorthand else [])
        add(
            flag.param_name,
            Optional[List[str]] if flag.multiple else Optional[str],
            typer.Option(
                None,
                *decls,
                help=flag.help or None,
                hidden=flag.hidden,
                show_default=flag.default_value or False,
            ),
        )

    proposal = command.proposal_params
    if proposal:
        add(proposal["no-proposal"], bool, typer.Option(
            False, "--no-proposal",
            help="Send the message directly instead of wrapping it in a governance proposal.",
        ))
        add(proposal["title"], Optional[str], typer.Option(
            None, "--title", help="Proposal title.", rich_help_panel="Proposal",
        ))
        add(proposal["summary"], Optional[str], typer.Option(
            None, "--summary", help="Proposal summary.", rich_help_panel="Proposal",
        ))
        add(proposal["metadata"], Optional[str], typer.Option(
            None, "--metadata", help="Proposal metadata (any string, e.g. an IPFS URI).",
            rich_help_panel="Proposal",
        ))
        add(proposal["deposit"], Optional[List[str]], typer.Option(
            None, "--deposit", help="Initial deposit, e.g. 10stake (repeatable).",
            rich_help_panel="Proposal",
        ))
        add(proposal["expedited"], bool, typer.Option(
            False, "--expedited", help="Submit as an expedited proposal.",
            rich_help_panel="Proposal",
        ))

    raw_items = ", ".join(f"{name!r}: {name}" for name in param_names)
    source = (
        f"def {func_name}({', '.join(sig_parts)}):\n"
        f"    return _dispatch({{{raw_items}}})\n"
    )

    namespace["_dispatch"] = _make_dispatch(command, runtime)
    code = compile(source, f"<autocli:{command.options.full_method}>", "exec")
    exec(code, namespace)  # noqa: S102 -- controlled code generation
    fn = namespace[func_name]

    fn.__doc__ = _build_help_text(command)
    fn.__name__ = func_name
    fn.__qualname__ = func_name
    return fn


def _make_dispatch(
    command: GeneratedCommand,
    runtime: CommandRuntime,
) -> Callable[[dict[str, Any]], Any]:
    """Return the function generated commands call with their raw parameter values.

    Errors raised while preparing or dispatching the request are printed to
    stderr and turned into an exit with the error's code.
    """

    def _dispatch(raw: dict[str, Any]) -> Any:
        from autocli.output import get_output

        try:
            return runtime.run(command, raw)
        except AutocliError as exc:
            get_output().error(str(exc))
            raise typer.Exit(code=exc.exit_code) from exc

    return _dispatch


# ---------------------------------------------------------------------------
# Help
# ---------------------------------------------------------------------------


def _build_help_text(command: GeneratedCommand) -> str:
    """Compose the help text: deprecation marker, one-line help, long description."""
    options = command.options
    parts: list[str] = []
    if options.deprecated:
        parts.append(f"[DEPRECATED: {options.deprecated}]")
    parts.append(options.help)
    if options.long and options.long.strip() != options.help:
        parts.append("")
        parts.append(options.long.strip())
    return "\n".join(parts)

