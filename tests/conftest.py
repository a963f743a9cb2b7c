import os
import pytest
from unittest.mock import MagicMock
from pathlib import Path

from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')

from modules.generation import GenerationClient
from modules.templates import TemplateRegistry
from tests.fixtures.mock_openai import fake_openai_client


@pytest.fixture(autouse=True)
def silence_logger(monkeypatch):
    # Patch any project logger acquisition to avoid noisy logs
    try:
        import modules.utils.logger as logger_mod
        monkeypatch.setattr(logger_mod, 'get_logger', lambda *a, **k: MagicMock())
    except Exception:
        pass
    yield


@pytest.fixture(autouse=True)
def reset_generation_client(monkeypatch):
    # every test starts without a cached client so env changes take effect
    monkeypatch.setattr(GenerationClient, '_instance', None)
    yield


@pytest.fixture
def registry():
    return TemplateRegistry.get_instance()


@pytest.fixture
def fake_openai():
    """Factory: ``fake_openai(reply)`` returns (GenerationClient, recorded completions)."""
    def _make(reply):
        client, completions = fake_openai_client(reply)
        return GenerationClient(api_key='sk-test', client=client, model='gpt-4o-mini'), completions
    return _make


@pytest.fixture
def install_fake_openai(monkeypatch, fake_openai):
    """Install a fake-backed client as the shared instance used by the HTTP layer."""
    def _install(reply):
        gen_client, completions = fake_openai(reply)
        monkeypatch.setattr(GenerationClient, '_instance', gen_client)
        return completions
    return _install


@pytest.fixture
def sample_transcripts():
    return {
        'math_worksheet': 'Create a 3rd grade math worksheet about fractions with 10 problems',
        'science_quiz': 'I need a 5th grade science quiz about photosynthesis with multiple choice questions',
        'content_only': 'Make a 4th grade science worksheet about the water cycle with no questions',
        'rubric': 'Make a 4 point rubric for a 7th grade history essay about the civil war',
        'exit_ticket': 'Quick exit ticket for 2nd grade on addition with three questions',
    }


def pytest_collection_modifyitems(config, items):
    # mark by directory so `-m unit` / `-m integration` select the right suites
    for item in items:
        path = str(item.path)
        if f'{os.sep}integration{os.sep}' in path:
            item.add_marker(pytest.mark.integration)
        elif f'{os.sep}unit{os.sep}' in path:
            item.add_marker(pytest.mark.unit)
