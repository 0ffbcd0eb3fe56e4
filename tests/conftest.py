import json

import pytest

from sgu_chat.chat import ChatService
from sgu_chat.config import RoutingConfig
from sgu_chat.data_store import corpus_from_data
from sgu_chat.generation import GenerationOrchestrator
from sgu_chat.matcher import RetrievalIndex
from sgu_chat.policy import RoutingPolicy

TUITION_ANSWER = "Tuition fees depend on the study program. See the admissions fee schedule."

FAQS = [
    {"q": "What are the tuition fees?", "a": TUITION_ANSWER},
    {"q": "How does the double degree program work?", "a": "You study at SGU and at a partner university abroad."},
    {"q": "Is an internship required?", "a": "Yes, every bachelor program includes an internship semester."},
    {"q": "Where is the SGU campus located?", "a": "In BSD City, Tangerang."},
]

TOPICS = {
    "About SGU": {
        "description": "An international university in Indonesia with industry links.",
        "vision": "Prepare graduates for a global career.",
        "mission": ["Teach in English", "Work with industry"],
        "double degree partners": [{"university": "Partner Uni A", "country": "Germany"}],
    },
    "IT: Cyber Security": {
        "faculty": "Engineering and IT",
        "description": "Bachelor program in network security and digital forensics.",
        "aliases": ["cyber security", "cybersecurity", "cyber"],
        "curriculum": {
            "semester 2": {"courses": ["Computer Networks", "Data Structures"]},
            "semester 1": {"courses": ["Programming Basics", "Mathematics I"]},
        },
        "lecturers": ["Dr. Alpha", "Dr. Beta", "Dr. Gamma", "Dr. Delta"],
        "career_prospects": ["Security Analyst", "Penetration Tester"],
        "international academic experience": {
            "joint degree program": {
                "partner_university": "Partner Uni B",
                "duration": "1 year",
                "degrees_awarded": ["B.Sc.", "B.Eng."],
            }
        },
    },
    "Mechatronics Engineering": {
        "faculty": "Engineering and IT",
        "description": "Bachelor program combining mechanical, electrical and control engineering.",
        "aliases": ["mechatronics"],
        "curriculum": {
            "semester 1": {"courses": ["Physics I", "Technical Drawing"]},
            "semester 2": {"courses": ["Electrical Circuits", "Statics"]},
        },
    },
}


def ndjson(*fragments, done=True):
    """Provider lines carrying ``fragments`` and, unless disabled, an end marker."""
    lines = [json.dumps({"message": {"role": "assistant", "content": f}, "done": False}) for f in fragments]
    if done:
        lines.append(json.dumps({"message": {"role": "assistant", "content": ""}, "done": True}))
    return lines


class FakeProvider:
    """Replays scripted NDJSON lines; optionally raises after ``fail_after`` lines."""

    def __init__(self):
        self.lines = []
        self.error = None
        self.fail_after = None
        self.calls = []
        self.consumed = 0
        self.closed = False

    def stream_chat(self, *, model, messages, temperature):
        self.calls.append({"model": model, "messages": list(messages), "temperature": temperature})
        try:
            for i, line in enumerate(self.lines):
                if self.error is not None and self.fail_after == i:
                    raise self.error
                self.consumed += 1
                yield line
            if self.error is not None and (self.fail_after is None or self.fail_after >= len(self.lines)):
                raise self.error
        finally:
            self.closed = True


@pytest.fixture
def corpus():
    return corpus_from_data(FAQS, TOPICS)


@pytest.fixture
def config():
    return RoutingConfig()


@pytest.fixture
def index(corpus, config):
    return RetrievalIndex(corpus, config)


@pytest.fixture
def policy(corpus, config):
    return RoutingPolicy(config, corpus)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def orchestrator(provider):
    return GenerationOrchestrator(provider, model="test-model", temperature=0.1, history_window=4)


@pytest.fixture
def chat(index, policy, orchestrator):
    return ChatService(index, policy, orchestrator)
