"""
Command rendering — the only place operations become shell strings.

Every value is passed through shlex.quote. Guards follow the usual
`unless` convention: exit status 0 means the setting is already in place.
"""

import shlex
from typing import List, Optional

from falcon_state.models.operation import (
    AgentFacet,
    FalconctlArguments,
    Guard,
    Operation,
    OperationKind,
    ProxyFragment,
    ReconcilePlan,
)
from falcon_state.models.settings import SensorSettings


class RenderError(ValueError):
    """Raised when an operation cannot be turned into a command."""
    pass


def _join(args: List[str]) -> str:
    return " ".join(shlex.quote(a) for a in args)


def proxy_args(proxy: ProxyFragment) -> List[str]:
    if proxy.disable:
        return ["--apd=true"]
    return ["--apd=false", f"--aph={proxy.host}", f"--app={proxy.port}"]


class CommandRenderer:
    """Renders operations against the configured falconctl binary."""

    def __init__(self, settings: Optional[SensorSettings] = None):
        self.settings = settings or SensorSettings()

    @property
    def falconctl(self) -> str:
        return self.settings.falconctl_path

    def command(self, operation: Operation, notified: bool = False) -> str:
        if operation.kind == OperationKind.SERVICE_ENABLE:
            return self.service_command(notified)
        if operation.arguments is None:
            raise RenderError(f"operation {operation.name} has no arguments to write")
        return self._falconctl_set(operation.arguments)

    def _falconctl_set(self, arguments: FalconctlArguments) -> str:
        # An explicitly empty tag list clears the tags instead of setting them
        if arguments.tags is not None and not arguments.tags and arguments.cid is None:
            return _join([self.falconctl, "-d", "-f", "--tags"])

        args = [self.falconctl, "-s", "-f"]
        if arguments.cid is not None:
            args.append(f"--cid={arguments.cid}")
        if arguments.proxy is not None:
            args.extend(proxy_args(arguments.proxy))
        if arguments.tags:
            args.append(f"--tags={','.join(arguments.tags)}")

        if len(args) == 3:
            raise RenderError("falconctl invocation would not set anything")
        return _join(args)

    def guard(self, operation: Operation) -> Optional[str]:
        if operation.guard is None:
            return None
        return self._guard(operation.guard)

    def _guard(self, guard: Guard) -> str:
        ctl = shlex.quote(self.falconctl)
        expected = guard.expected

        if guard.facet == AgentFacet.CID:
            pattern = 'cid="' + expected
            return f"{ctl} -g --cid | grep -qiF {shlex.quote(pattern)}"

        if guard.facet == AgentFacet.TAGS:
            live = (
                f"{ctl} -g --tags | sed -n 's/.*tags are: //p' | sed 's/\\.$//'"
                " | tr ',' '\\n' | sed '/^$/d' | LC_ALL=C sort -u | paste -sd, -"
            )
            return f'test "$({live})" = {shlex.quote(expected)}'

        facet = guard.facet.value
        return (
            f"{ctl} -g --{facet} | sed 's/\\.$//' "
            f"| grep -qixF {shlex.quote(f'{facet}={expected}')}"
        )

    def service_command(self, restart: bool = False) -> str:
        service = self.settings.service_name
        if restart:
            return " && ".join([
                _join(["systemctl", "enable", service]),
                _join(["systemctl", "restart", service]),
            ])
        return _join(["systemctl", "enable", "--now", service])

    def render(self, plan: ReconcilePlan) -> List[dict]:
        """Rendered view of a plan, one entry per operation."""
        rendered = []
        for op in plan.operations:
            rendered.append({
                "name": op.name,
                "command": self.command(op),
                "guard": self.guard(op),
                "depends_on": list(op.depends_on),
                "notifies": list(op.notifies),
            })
        return rendered
