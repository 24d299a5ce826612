"""Runs a workload through the agent for its language."""

from __future__ import annotations

from cloudlet.agents import Agent, create_agent
from cloudlet.workload import Action, AgentOutput, Config


class Runner:
    """Executes the configured action with the workload's agent."""

    def __init__(self, config: Config, agent: Agent | None = None) -> None:
        self.config = config
        self.agent = agent if agent is not None else create_agent(config)

    def run(self) -> AgentOutput:
        """Perform the action and return the last agent output."""
        action = self.config.action
        if action is Action.PREPARE:
            result = self.agent.prepare()
        elif action is Action.RUN:
            result = self.agent.run()
        else:
            prepared = self.agent.prepare()
            print(f"Prepare result {prepared!r}")
            result = self.agent.run()

        print(f"Result: {result!r}")
        return result