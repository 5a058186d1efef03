"""Tests for command and guard rendering."""

import pytest

from falcon_state.execution.commands import CommandRenderer, RenderError
from falcon_state.models.desired import DesiredState
from falcon_state.models.facts import AgentFacts
from falcon_state.models.operation import (
    AgentFacet,
    FalconctlArguments,
    Guard,
    Operation,
    OperationKind,
    ProxyFragment,
)
from falcon_state.models.settings import SensorSettings
from falcon_state.reconciler.planner import reconcile

CTL = "/opt/CrowdStrike/falconctl"


def _op(kind, guard_facet, expected, **arguments) -> Operation:
    return Operation(
        kind=kind,
        arguments=FalconctlArguments(**arguments),
        guard=Guard(facet=guard_facet, expected=expected),
    )


class TestCommands:
    def setup_method(self):
        self.renderer = CommandRenderer()

    def test_register_command(self):
        op = _op(
            OperationKind.REGISTER, AgentFacet.CID, "abcde",
            cid="ABCDE-12",
            proxy=ProxyFragment(disable=True),
            tags=["x", "y"],
        )
        assert self.renderer.command(op) == f"{CTL} -s -f --cid=ABCDE-12 --apd=true --tags=x,y"

    def test_enabled_proxy_command(self):
        op = _op(
            OperationKind.UPDATE_PROXY_HOST, AgentFacet.PROXY_HOST, "proxy.example.com",
            proxy=ProxyFragment(disable=False, host="proxy.example.com", port=3128),
        )
        assert self.renderer.command(op) == (
            f"{CTL} -s -f --apd=false --aph=proxy.example.com --app=3128"
        )

    def test_empty_tags_clear(self):
        op = _op(OperationKind.UPDATE_TAGS, AgentFacet.TAGS, "", tags=[])
        assert self.renderer.command(op) == f"{CTL} -d -f --tags"

    def test_values_are_quoted(self):
        op = _op(OperationKind.UPDATE_TAGS, AgentFacet.TAGS, "a b", tags=["a b"])
        assert self.renderer.command(op) == f"{CTL} -s -f '--tags=a b'"

    def test_nothing_to_set(self):
        op = _op(OperationKind.UPDATE_TAGS, AgentFacet.TAGS, "web")
        with pytest.raises(RenderError):
            self.renderer.command(op)

    def test_custom_falconctl_path(self):
        renderer = CommandRenderer(SensorSettings(falconctl_path="/usr/bin/falconctl"))
        op = _op(OperationKind.UPDATE_TAGS, AgentFacet.TAGS, "web", tags=["web"])
        assert renderer.command(op).startswith("/usr/bin/falconctl -s -f")

    def test_service_commands(self):
        service = Operation(kind=OperationKind.SERVICE_ENABLE)
        assert self.renderer.command(service) == "systemctl enable --now falcon-sensor"
        assert self.renderer.command(service, notified=True) == (
            "systemctl enable falcon-sensor && systemctl restart falcon-sensor"
        )
        assert self.renderer.guard(service) is None


class TestGuards:
    def setup_method(self):
        self.renderer = CommandRenderer()

    def test_cid_guard(self):
        guard = self.renderer._guard(Guard(facet=AgentFacet.CID, expected="abcde"))
        assert guard == f"{CTL} -g --cid | grep -qiF 'cid=\"abcde'"

    def test_tag_guard_compares_sorted_set(self):
        guard = self.renderer._guard(Guard(facet=AgentFacet.TAGS, expected="db,web"))
        assert guard.startswith('test "$(')
        assert "LC_ALL=C sort -u" in guard
        assert guard.endswith("= db,web")

    def test_proxy_guards(self):
        host = self.renderer._guard(Guard(facet=AgentFacet.PROXY_HOST, expected="p.example.com"))
        port = self.renderer._guard(Guard(facet=AgentFacet.PROXY_PORT, expected="3128"))
        disable = self.renderer._guard(Guard(facet=AgentFacet.PROXY_DISABLE, expected="true"))

        assert host.startswith(f"{CTL} -g --aph")
        assert host.endswith("grep -qixF aph=p.example.com")
        assert port.endswith("grep -qixF app=3128")
        assert disable.startswith(f"{CTL} -g --apd")
        assert disable.endswith("grep -qixF apd=true")


class TestRenderPlan:
    def test_render_proxy_plan(self):
        facts = AgentFacts.from_facts({"agent_id": "abc", "proxy_disable": True})
        desired = DesiredState(proxy_host="proxy.example.com", proxy_port=3128)
        rendered = CommandRenderer().render(reconcile(desired, facts))

        assert [r["name"] for r in rendered] == [
            "update-proxy-host", "update-proxy-port", "service-enable",
        ]
        assert rendered[0]["command"] == rendered[1]["command"]
        assert rendered[0]["guard"] != rendered[1]["guard"]
        assert rendered[2]["guard"] is None
        assert all(r["depends_on"] == ["package"] for r in rendered)
