# learning/tests/conftest.py
import pytest
from rest_framework.test import APIClient

from learning.models import Language, Level, Module, User

from .fakes import FakeSynthesizer


@pytest.fixture(autouse=True)
def tts(settings, tmp_path):
    """Route authoring through FakeSynthesizer and keep media in a temp dir."""
    settings.MEDIA_ROOT = tmp_path
    settings.LANGQUEST_TTS = {
        "BACKEND": "learning.tests.fakes.FakeSynthesizer",
        "URL": None,
        "TIMEOUT": 1,
    }
    FakeSynthesizer.calls = []
    FakeSynthesizer.fail_on = None
    yield FakeSynthesizer
    FakeSynthesizer.calls = []
    FakeSynthesizer.fail_on = None


@pytest.fixture
def make_user(db):
    def _make(username, **extra):
        return User.objects.create_user(username=username, password="pw", **extra)
    return _make


@pytest.fixture
def user(make_user):
    return make_user("learner")


@pytest.fixture
def admin(make_user):
    return make_user("admin", is_staff=True)


@pytest.fixture
def user_client(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def admin_client(admin):
    c = APIClient()
    c.force_authenticate(user=admin)
    return c


@pytest.fixture
def language(db):
    return Language.objects.create(name="English")


@pytest.fixture
def module(language):
    return Module.objects.create(language=language, name="Basics")


@pytest.fixture
def level(module):
    return Level.objects.create(module=module, name="Greetings", quests_count=3)
