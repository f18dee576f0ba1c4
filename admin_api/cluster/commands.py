"""Read-only kubectl-style commands served through the Kubernetes API.

Nothing is executed in a shell. Each supported verb maps to one handler that
talks to the same list/get primitives the console uses elsewhere.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import yaml

from admin_api.cluster.client import OrchestrationClient

logger = logging.getLogger(__name__)

DEFAULT_TAIL_LINES = 100


class CommandVerb(str, Enum):
    GET = "get"
    DESCRIBE = "describe"
    LOGS = "logs"
    TOP = "top"
    EXPLAIN = "explain"


class CommandNotAllowed(ValueError):
    pass


POD_ALIASES = {"pod", "pods", "po"}
DEPLOYMENT_ALIASES = {"deployment", "deployments", "deploy"}
SERVICE_ALIASES = {"service", "services", "svc"}

# Flags that consume the following token as their value
VALUE_FLAGS = {"-n", "--namespace", "-c", "--container", "--tail", "-o", "--output", "-l", "--selector"}


@dataclass
class ParsedCommand:
    verb: str
    args: list[str]
    namespace: str
    container: str | None = None
    tail: int = DEFAULT_TAIL_LINES
    flags: dict[str, str] = field(default_factory=dict)


@dataclass
class CommandResult:
    output: str = ""
    error: str = ""
    exitCode: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {"output": self.output, "error": self.error, "exitCode": self.exitCode}


def _failure(message: str) -> CommandResult:
    return CommandResult(error=message, exitCode=1)


def parse_command(command: str, namespace: str) -> ParsedCommand:
    tokens = command.split()
    if not tokens:
        raise CommandNotAllowed("Command is empty")
    parsed = ParsedCommand(verb=tokens[0], args=[], namespace=namespace)
    rest = iter(tokens[1:])
    for token in rest:
        name, _, inline = token.partition("=")
        if name in VALUE_FLAGS:
            value = inline or next(rest, "")
            if name in ("-n", "--namespace"):
                parsed.namespace = value or namespace
            elif name in ("-c", "--container"):
                parsed.container = value or None
            elif name == "--tail":
                try:
                    parsed.tail = int(value)
                except ValueError:
                    parsed.flags["tail"] = value
            else:
                parsed.flags[name.lstrip("-")] = value
        elif token.startswith("-"):
            parsed.flags[name.lstrip("-")] = inline
        else:
            parsed.args.append(token)
    return parsed


def _table(headers: list[str], rows: list[list[Any]]) -> str:
    cells = [headers] + [[str(v) for v in row] for row in rows]
    widths = [max(len(row[i]) for row in cells) for i in range(len(headers))]
    return "\n".join(
        "   ".join(value.ljust(widths[i]) for i, value in enumerate(row)).rstrip() for row in cells
    )


def _not_found(namespace: str) -> CommandResult:
    return CommandResult(error=f"No resources found in {namespace} namespace.")


# --- Handlers ---

async def _get(cluster: OrchestrationClient, cmd: ParsedCommand) -> CommandResult:
    if not cmd.args:
        return _failure("You must specify the type of resource to get: pods, deployments or services")
    kind, names = cmd.args[0].lower(), set(cmd.args[1:])

    if kind in POD_ALIASES:
        items = await cluster.list_pods([cmd.namespace])
        items = [p for p in items if not names or p["name"] in names]
        if not items:
            return _not_found(cmd.namespace)
        rows = [[p["name"], p["ready"], p["status"], p["restarts"], p["age"]] for p in items]
        return CommandResult(output=_table(["NAME", "READY", "STATUS", "RESTARTS", "AGE"], rows))

    if kind in DEPLOYMENT_ALIASES:
        items = await cluster.list_deployments([cmd.namespace])
        items = [d for d in items if not names or d["name"] in names]
        if not items:
            return _not_found(cmd.namespace)
        rows = [
            [d["name"], d["replicas"], d["updatedReplicas"], d["availableReplicas"], d["age"]] for d in items
        ]
        return CommandResult(output=_table(["NAME", "READY", "UP-TO-DATE", "AVAILABLE", "AGE"], rows))

    if kind in SERVICE_ALIASES:
        items = await cluster.list_services(cmd.namespace)
        items = [s for s in items if not names or s["name"] in names]
        if not items:
            return _not_found(cmd.namespace)
        rows = [[s["name"], s["type"], s["clusterIP"], ",".join(s["ports"]) or "<none>", s["age"]] for s in items]
        return CommandResult(output=_table(["NAME", "TYPE", "CLUSTER-IP", "PORT(S)", "AGE"], rows))

    return _failure(f"Unsupported resource type '{kind}' for get. Supported: pods, deployments, services")


async def _describe(cluster: OrchestrationClient, cmd: ParsedCommand) -> CommandResult:
    if len(cmd.args) < 2:
        return _failure("Usage: describe pod|deployment <name>")
    kind, name = cmd.args[0].lower(), cmd.args[1]
    if kind in POD_ALIASES:
        item = await cluster.get_pod(cmd.namespace, name)
    elif kind in DEPLOYMENT_ALIASES:
        item = await cluster.get_deployment(cmd.namespace, name)
    else:
        return _failure(f"Unsupported resource type '{kind}' for describe. Supported: pod, deployment")
    return CommandResult(output=yaml.safe_dump(item, sort_keys=False, default_flow_style=False))


async def _logs(cluster: OrchestrationClient, cmd: ParsedCommand) -> CommandResult:
    if not cmd.args:
        return _failure("Usage: logs <pod> [-c container] [--tail N]")
    name = cmd.args[0]
    if "/" in name:
        kind, _, name = name.partition("/")
        if kind.lower() not in POD_ALIASES:
            return _failure(f"Unsupported resource type '{kind}' for logs. Supported: pod")
    logs = await cluster.get_pod_logs(cmd.namespace, name, tail_lines=cmd.tail, timestamps=False, container=cmd.container)
    return CommandResult(output=logs or "")


async def _top(cluster: OrchestrationClient, cmd: ParsedCommand) -> CommandResult:
    kind = cmd.args[0].lower() if cmd.args else ""
    if kind not in POD_ALIASES:
        return _failure("Usage: top pods")
    if not cluster.metrics_available:
        return _failure("Metrics API is not available")
    metrics = await cluster.pod_metrics(cmd.namespace)
    if not metrics:
        return _not_found(cmd.namespace)
    rows = [[m["name"], m["cpu"], m["memory"]] for m in metrics]
    return CommandResult(output=_table(["NAME", "CPU(cores)", "MEMORY(bytes)"], rows))


EXPLANATIONS = {
    "pods": (
        "KIND:     Pod\nVERSION:  v1\n\n"
        "DESCRIPTION:\n     Pod is a collection of containers that can run on a host. This resource is\n"
        "     created by clients and scheduled onto hosts."
    ),
    "deployments": (
        "KIND:     Deployment\nVERSION:  apps/v1\n\n"
        "DESCRIPTION:\n     Deployment enables declarative updates for Pods and ReplicaSets."
    ),
    "services": (
        "KIND:     Service\nVERSION:  v1\n\n"
        "DESCRIPTION:\n     Service is a named abstraction of software service (for example, mysql)\n"
        "     consisting of local port that the proxy listens on, and the selector that\n"
        "     determines which pods will answer requests sent through the proxy."
    ),
}


async def _explain(cluster: OrchestrationClient, cmd: ParsedCommand) -> CommandResult:
    kind = cmd.args[0].lower().split(".")[0] if cmd.args else ""
    for canonical, aliases in (("pods", POD_ALIASES), ("deployments", DEPLOYMENT_ALIASES), ("services", SERVICE_ALIASES)):
        if kind in aliases:
            return CommandResult(output=EXPLANATIONS[canonical])
    return _failure(f"Unsupported resource type '{kind}' for explain. Supported: pods, deployments, services")


Handler = Callable[[OrchestrationClient, ParsedCommand], Awaitable[CommandResult]]

HANDLERS: dict[CommandVerb, Handler] = {
    CommandVerb.GET: _get,
    CommandVerb.DESCRIBE: _describe,
    CommandVerb.LOGS: _logs,
    CommandVerb.TOP: _top,
    CommandVerb.EXPLAIN: _explain,
}

REFERENCE: dict[CommandVerb, dict[str, Any]] = {
    CommandVerb.GET: {
        "description": "List pods, deployments or services in a namespace",
        "examples": ["get pods", "get deployments", "get services -n snow-mcp"],
    },
    CommandVerb.DESCRIBE: {
        "description": "Show details of a pod or deployment",
        "examples": ["describe pod <pod-name>", "describe deployment <deployment-name>"],
    },
    CommandVerb.LOGS: {
        "description": "Print the logs of a pod container",
        "examples": ["logs <pod-name>", "logs <pod-name> -c <container> --tail 50"],
    },
    CommandVerb.TOP: {
        "description": "Show CPU and memory usage of pods (requires metrics-server)",
        "examples": ["top pods"],
    },
    CommandVerb.EXPLAIN: {
        "description": "Describe a resource type",
        "examples": ["explain pods", "explain deployments"],
    },
}

if set(HANDLERS) != set(CommandVerb) or set(REFERENCE) != set(CommandVerb):
    raise RuntimeError("Every CommandVerb needs a handler and a reference entry")


def check_allowed(command: str, allow_list: list[str]) -> str:
    """Return the verb of ``command`` or raise CommandNotAllowed."""
    tokens = command.split()
    if not tokens:
        raise CommandNotAllowed("Command is empty")
    verb = tokens[0]
    if verb not in allow_list:
        raise CommandNotAllowed(f"Command '{verb}' is not allowed. Allowed commands: {', '.join(allow_list)}")
    return verb


async def execute_command(
    cluster: OrchestrationClient,
    command: str,
    namespace: str,
    allow_list: list[str],
) -> tuple[CommandResult, str]:
    """Run an allowed command. Returns the result and the namespace it ran against.

    Disallowed verbs raise CommandNotAllowed before anything reaches the cluster;
    every other problem is reported in the result with a nonzero exit code.
    """
    check_allowed(command, allow_list)
    parsed = parse_command(command, namespace)
    try:
        verb = CommandVerb(parsed.verb)
    except ValueError:
        return _failure(f"Command '{parsed.verb}' is not supported by this console"), parsed.namespace

    try:
        result = await HANDLERS[verb](cluster, parsed)
    except Exception as exc:
        logger.error("Command '%s' failed in namespace %s: %s", command, parsed.namespace, exc)
        result = _failure(str(getattr(exc, "reason", None) or exc))
    logger.info("Executed '%s' in namespace %s (exit %d)", verb.value, parsed.namespace, result.exitCode)
    return result, parsed.namespace


def command_reference(allow_list: list[str]) -> list[dict[str, Any]]:
    reference = []
    for verb in CommandVerb:
        if verb.value in allow_list:
            reference.append({"command": verb.value, **REFERENCE[verb]})
    return reference
