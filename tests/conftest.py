"""Root pytest configuration for image-upgrades tests."""
import pytest

from image_upgrades.models import UpdatePolicy
from image_upgrades.settings import Settings
from image_upgrades.versioning import DockerVersioning

from tests.storage.fakes.fake_registry import FakeImageRegistry


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path):
    """Isolate tests from the user's environment and Docker config."""
    for key in (
        "IMAGE_UPGRADES_DEFAULT_REGISTRY",
        "IMAGE_UPGRADES_REGISTRY_INSECURE",
        "IMAGE_UPGRADES_REGISTRY_USERNAME",
        "IMAGE_UPGRADES_REGISTRY_PASSWORD",
        "IMAGE_UPGRADES_HTTP_TIMEOUT",
        "IMAGE_UPGRADES_HTTP_RETRY",
        "IMAGE_UPGRADES_TAGS_PAGE_SIZE",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("IMAGE_UPGRADES_DOCKER_CONFIG", str(tmp_path / "docker-config.json"))


@pytest.fixture
def settings(tmp_path):
    """Standard test settings (no retries, isolated Docker config)."""
    return Settings(http_retry=0, docker_config=tmp_path / "docker-config.json")


@pytest.fixture
def registry():
    """Standard fake registry for testing."""
    return FakeImageRegistry()


@pytest.fixture
def policy():
    """Default update policy."""
    return UpdatePolicy()


@pytest.fixture
def scheme():
    """Default version scheme."""
    return DockerVersioning()
