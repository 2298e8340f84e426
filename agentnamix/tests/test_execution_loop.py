import tempfile

import pytest

from agentnamix.domain.agent import AgentConfiguration, Task
from agentnamix.domain.exceptions import ProviderError
from agentnamix.domain.models import GenerateResult, GroundingChunk, Part, Turn
from agentnamix.flows.graph import FALLBACK_ANSWER
from agentnamix.flows.runner import build_initial_history, build_system_prompt, run_task
from agentnamix.infrastructure.storage.json_store import JsonAgentStore
from agentnamix.providers.gateway import ModelGateway
from agentnamix.tools.definitions import ToolCall
from agentnamix.tools.handlers.ssh import SimulatedShell


PAGE = "Contenido extenso de la página de ejemplo con datos útiles para el resumen."


class ScriptedProvider:
    name = "scripted"

    def __init__(self, results):
        self.results = list(results)
        self.requests = []

    def generate(self, req):
        self.requests.append(req)
        return self.results.pop(0)


def model_turn(*parts):
    return GenerateResult(model="m", turn=Turn(role="model", parts=list(parts)), finish_reason="STOP")


def call(name, **args):
    return Part(function_call=ToolCall(id=None, name=name, arguments=args))


def text(value):
    return Part.from_text(value)


def run(config, results, **kw):
    provider = ScriptedProvider(results)
    gateway = ModelGateway(provider, attempts=1, initial_delay=0, sleep=lambda s: None)
    task = Task(id="task-0", description="Resume la página")
    outcome = run_task(task, "", "Objetivo", config, gateway, **kw)
    return outcome, provider


def patch_fetch(monkeypatch):
    class Resp:
        status_code = 200
        text = PAGE
        reason_phrase = "OK"

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def get(self, url, **kw):
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)


def test_scrape_then_answer_in_one_round(monkeypatch):
    patch_fetch(monkeypatch)
    config = AgentConfiguration(name="a", description="d", tools={"web_scrape"})
    outcome, provider = run(
        config,
        [model_turn(call("web_scrape", url="example.com")), model_turn(text("Resumen final"))],
    )

    assert outcome.model_text == "Resumen final"
    assert outcome.rounds == 1
    assert outcome.truncated is False
    assert outcome.render() == "Resumen final"

    second = provider.requests[1].contents
    assert [t.role for t in second] == ["user", "model", "user"]
    response = second[2].parts[0].function_response
    assert response.name == "web_scrape"
    assert response.response["result"]["success"] is True
    assert response.response["result"]["content"] == PAGE


def test_multiple_calls_in_one_turn_answered_together():
    config = AgentConfiguration(name="a", description="d", tools={"google_calendar", "google_drive"})
    outcome, provider = run(
        config,
        [
            model_turn(
                text("Preparo todo"),
                call("google_calendar", title="Demo", startTime="2025-01-01T10:00:00Z", endTime="2025-01-01T11:00:00Z"),
                call("google_drive", action="CREATE", fileType="document"),
            ),
            model_turn(text("Listo")),
        ],
    )

    responses = provider.requests[1].contents[-1].parts
    assert [p.function_response.name for p in responses] == ["google_calendar", "google_drive"]
    assert outcome.rounds == 1
    assert len(outcome.rendered_widgets) == 2
    assert "Evento Programado" in outcome.rendered_widgets[0]
    # 展示片段只进入最终结果，不进入对话历史
    assert "Evento Programado" not in str(responses[0].function_response.response)
    assert outcome.render().startswith("Listo\n\n")


def test_failed_tool_is_reported_to_model():
    config = AgentConfiguration(name="a", description="d", tools={"google_drive"})
    outcome, provider = run(
        config,
        [model_turn(call("google_drive", action="DELETE")), model_turn(text("No pude"))],
    )
    result = provider.requests[1].contents[-1].parts[0].function_response.response["result"]
    assert result["success"] is False
    assert outcome.model_text == "No pude"


def test_empty_model_content_is_fatal():
    config = AgentConfiguration(name="a", description="d", tools=set())
    empty = GenerateResult(model="m", turn=None, finish_reason="SAFETY")
    with pytest.raises(ProviderError) as exc:
        run(config, [empty])
    assert exc.value.code == "EMPTY_RESPONSE"
    assert "FinishReason: SAFETY" in exc.value.message


def test_round_limit_truncates_with_partial_answer():
    config = AgentConfiguration(name="a", description="d", tools={"google_drive"})
    looping = [model_turn(text("Sigo buscando"), call("google_drive", action="SEARCH", query="x")) for _ in range(3)]
    outcome, provider = run(config, looping, max_rounds=2)

    assert outcome.truncated is True
    assert outcome.rounds == 2
    assert outcome.model_text == "Sigo buscando"
    assert len(provider.requests) == 2


def test_round_limit_without_text_uses_fallback():
    config = AgentConfiguration(name="a", description="d", tools={"google_drive"})
    outcome, _ = run(config, [model_turn(call("google_drive", action="SEARCH", query="x"))], max_rounds=1)
    assert outcome.truncated is True
    assert outcome.model_text == FALLBACK_ANSWER


def test_empty_final_text_uses_fallback():
    config = AgentConfiguration(name="a", description="d", tools=set())
    outcome, _ = run(config, [model_turn(text(""))])
    assert outcome.model_text == FALLBACK_ANSWER


def test_native_search_sources_come_first():
    config = AgentConfiguration(name="a", description="d", tools={"web_search"})
    result = model_turn(text("Según las fuentes..."))
    result.grounding_chunks = [
        GroundingChunk(uri="https://a.com/x", title="A"),
        GroundingChunk(uri="https://b.com", title="B"),
    ]
    outcome, provider = run(config, [result])

    assert provider.requests[0].native_search is True
    assert provider.requests[0].tools is None
    sources = outcome.rendered_widgets[0]
    assert sources.startswith("---\n### 📚 Fuentes")
    assert "- [A](https://a.com/x)" in sources
    assert "https://s0.wp.com/mshots/v1/https%3A%2F%2Fa.com%2Fx" in sources


def test_grounding_ignored_without_native_search():
    config = AgentConfiguration(name="a", description="d", tools=set())
    result = model_turn(text("Hola"))
    result.grounding_chunks = [GroundingChunk(uri="https://a.com", title="A")]
    outcome, _ = run(config, [result])
    assert outcome.rendered_widgets == []


def test_ssh_tool_uses_given_shell():
    config = AgentConfiguration(name="a", description="d", tools={"aura_ssh"})
    shell = SimulatedShell()
    outcome, provider = run(
        config,
        [model_turn(call("aura_ssh_command", command="whoami", reasoning="check")), model_turn(text("Eres root"))],
        shell=shell,
    )
    result = provider.requests[1].contents[-1].parts[0].function_response.response["result"]
    assert result["output"] == "root"
    assert "SIMULATION MODE" in outcome.rendered_widgets[0]


def test_system_prompt_includes_high_priority_memories():
    with tempfile.TemporaryDirectory() as d:
        store = JsonAgentStore(root=d, seed_defaults=False)
        store.add_memory("El cliente se llama Ana", "fact", "high")
        store.add_memory("irrelevante", "fact", "low")
        config = AgentConfiguration(name="Bot", description="Asistente", tools={"memory_system"})
        prompt = build_system_prompt(config, store)

    assert prompt.startswith("Eres Bot. Asistente")
    assert "[MEMORIA A LARGO PLAZO - DATOS CRÍTICOS]" in prompt
    assert "El cliente se llama Ana" in prompt
    assert "irrelevante" not in prompt


def test_initial_history_mentions_start_url_for_browser():
    config = AgentConfiguration(name="a", description="d", tools={"browser_interaction"})
    history = build_initial_history(Task(id="t", description="Busca"), "previo", "Meta", config)
    prompt = history.turns[0].parts[0].text
    assert "URL INICIAL: https://www.google.com" in prompt
    assert "TAREA ACTUAL: Busca" in prompt
    assert "CONTEXTO PREVIO: previo" in prompt


def test_navigation_404_is_fed_back_to_model(monkeypatch):
    class Resp:
        status_code = 404
        text = ""
        reason_phrase = "Not Found"

    class Client:
        def __init__(self, *a, **kw):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *a):
            return False

        def get(self, url, **kw):
            return Resp()

    monkeypatch.setattr("httpx.Client", Client)
    events = []
    config = AgentConfiguration(name="a", description="d", tools={"browser_interaction"})
    outcome, provider = run(
        config,
        [
            model_turn(call("browser_action", action="NAVIGATE", value="https://example.com/perdida")),
            model_turn(text("La página no existe, busco en otra fuente.")),
        ],
        on_browser_action=events.append,
    )

    result = provider.requests[1].contents[-1].parts[0].function_response.response["result"]
    assert result["success"] is False
    assert "no encontrada" in result["message"]
    assert outcome.model_text == "La página no existe, busco en otra fuente."
    assert events[0].kind == "navigate"
