import logging

import pytest

from agentnamix.agents.planner import MAX_PLAN_STEPS, Planner, parse_plan
from agentnamix.domain.agent import AgentConfiguration, AgentDocument
from agentnamix.domain.exceptions import PlanningError


def test_parse_plan_plain_and_fenced():
    assert parse_plan('["uno", "dos"]') == ["uno", "dos"]
    assert parse_plan('```json\n["uno", " dos "]\n```') == ["uno", "dos"]


def test_parse_plan_single_step_is_valid():
    assert parse_plan('["solo un paso"]') == ["solo un paso"]


def test_parse_plan_truncates():
    steps = [f"paso {i}" for i in range(9)]
    text = "[" + ", ".join(f'"{s}"' for s in steps) + "]"
    assert parse_plan(text) == steps[:MAX_PLAN_STEPS]


@pytest.mark.parametrize("text", ["[]", '["  ", ""]'])
def test_parse_plan_empty(text):
    with pytest.raises(PlanningError) as exc:
        parse_plan(text)
    assert exc.value.code == "EMPTY_PLAN"


@pytest.mark.parametrize("text", ["no es json", '{"steps": ["a"]}', "[1, 2]", ""])
def test_parse_plan_malformed(text):
    with pytest.raises(PlanningError) as exc:
        parse_plan(text)
    assert exc.value.code == "MALFORMED_PLAN"


class FakeGateway:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    def plan_call(self, model, prompt):
        self.calls.append((model, prompt))
        return self.reply


def test_planner_builds_prompt_and_parses():
    gateway = FakeGateway('["investigar", "redactar"]')
    config = AgentConfiguration(
        name="Investigador",
        description="Experto en búsqueda",
        tools={"web_search", "deep_analysis"},
        model="gpt-5mini",
        documents=[AgentDocument(name="notas.txt", content="dato clave")],
    )
    steps = Planner(gateway).plan("Analiza el mercado", config)

    assert steps == ["investigar", "redactar"]
    model, prompt = gateway.calls[0]
    assert model == "gpt-5mini"
    assert "Investigador" in prompt
    assert "Analiza el mercado" in prompt
    assert "deep_analysis, web_search" in prompt
    assert "dato clave" in prompt


def test_planner_warns_on_short_plan(caplog):
    config = AgentConfiguration(name="a", description="d")
    with caplog.at_level(logging.WARNING, logger="agentnamix"):
        steps = Planner(FakeGateway('["único paso"]')).plan("meta", config)
    assert steps == ["único paso"]
    assert any(r.getMessage() == "plan shorter than expected" for r in caplog.records)


def test_planner_full_plan_has_no_warning(caplog):
    config = AgentConfiguration(name="a", description="d")
    with caplog.at_level(logging.WARNING, logger="agentnamix"):
        Planner(FakeGateway('["a", "b", "c"]')).plan("meta", config)
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]
