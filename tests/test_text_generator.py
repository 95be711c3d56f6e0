import asyncio
import threading
import time
from types import SimpleNamespace

from azure.ai.agents.models import MessageRole

from src.agents.text_generator import FoundryTextGenerator

_ANSWER = '{"title": "ok"}'


class FakeAgents:
    """In-memory stand-in for ``AIProjectClient.agents``."""

    def __init__(self, existing=(), list_delay=0.0):
        self._existing = list(existing)
        self._list_delay = list_delay
        self._lock = threading.Lock()
        self._thread_count = 0
        self.created = 0
        self.deleted_threads = []
        self.run_agent_ids = []
        self.threads = SimpleNamespace(create=self._create_thread, delete=self.deleted_threads.append)
        self.messages = SimpleNamespace(create=lambda **kwargs: None, list=self._list_messages)
        self.runs = SimpleNamespace(create_and_process=self._create_and_process)

    def list_agents(self):
        time.sleep(self._list_delay)
        with self._lock:
            return list(self._existing)

    def create_agent(self, *, model, name, instructions):
        with self._lock:
            self.created += 1
            agent = SimpleNamespace(id=f"agent-{self.created}", name=name)
            self._existing.append(agent)
        return agent

    def _create_thread(self):
        with self._lock:
            self._thread_count += 1
            return SimpleNamespace(id=f"thread-{self._thread_count}")

    def _create_and_process(self, *, thread_id, agent_id, additional_instructions):
        self.run_agent_ids.append(agent_id)
        return SimpleNamespace(status="completed")

    def _list_messages(self, *, thread_id, order):
        text = SimpleNamespace(text=SimpleNamespace(value=_ANSWER))
        return [SimpleNamespace(role=MessageRole.AGENT, text_messages=[text])]


def _generator(agents):
    return FoundryTextGenerator(
        endpoint=None,
        model="gpt",
        agent_name="SeoWriter",
        client=SimpleNamespace(agents=agents),
    )


def test_concurrent_completions_create_one_agent():
    agents = FakeAgents(list_delay=0.1)
    generator = _generator(agents)

    async def run_chunk():
        return await asyncio.gather(*(generator.complete("system", f"item {i}") for i in range(5)))

    assert asyncio.run(run_chunk()) == [_ANSWER] * 5
    assert agents.created == 1
    assert agents.run_agent_ids == ["agent-1"] * 5
    assert len(agents.deleted_threads) == 5


def test_existing_agent_is_reused():
    agents = FakeAgents(existing=[SimpleNamespace(id="agent-x", name="SeoWriter")])
    generator = _generator(agents)
    assert asyncio.run(generator.complete("system", "user")) == _ANSWER
    assert agents.created == 0
    assert agents.run_agent_ids == ["agent-x"]
