"""Shared fixtures: a scripted fake site and orchestrator factories."""

import pytest

from rednote.auth import CookieStore, SessionManager
from rednote.browser import SessionHandle
from rednote.models import Cookie
from rednote.orchestrator import ExtractionOrchestrator
from rednote.pacing import NoDelay
from rednote.run_config import RedNoteRunConfig

from .fakes import VALID_COOKIE, FakeSite


class RecordingSleep:
    """Sleep replacement that records requested delays."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def config(tmp_path):
    return RedNoteRunConfig(home_dir=str(tmp_path / "home"))


@pytest.fixture
def store(config):
    return CookieStore(config.cookie_path)


@pytest.fixture
def seed_valid_cookie(store):
    def _seed():
        store.save([Cookie.from_playwright(VALID_COOKIE)])
    return _seed


@pytest.fixture
def make_manager(config, store):
    def _make(site: FakeSite, sleep=None, cfg=None):
        handle = SessionHandle(launcher=site.launch)
        return SessionManager(cfg or config, handle, store, sleep=sleep or RecordingSleep())
    return _make


@pytest.fixture
def make_orchestrator(config, make_manager):
    def _make(site: FakeSite, cfg=None, delay=None):
        cfg = cfg or config
        manager = make_manager(site, cfg=cfg)
        return ExtractionOrchestrator(cfg, session_manager=manager, delay=delay or NoDelay())
    return _make
