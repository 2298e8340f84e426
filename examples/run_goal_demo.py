"""Minimal demonstration of a full mission: plan, execute every task, print the report."""

from agentnamix.api.service import export_report, run_mission
from agentnamix.domain.agent import AgentConfiguration

if __name__ == "__main__":
    config = AgentConfiguration(
        name="Investigador",
        description="Experto en búsqueda web y síntesis de información.",
        tools={"web_search", "web_scrape", "memory_system"},
    )
    goal = "Resume las novedades más importantes de Python 3.13"
    state = run_mission(goal, config)
    print("Status:", state["status"])
    for task in state["tasks"]:
        print(f"- [{task['status']}] {task['description']}")
    if state["status"] == "FINISHED":
        print(export_report())
