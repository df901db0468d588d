"""Unit tests for kube-exec settings and logging setup.

Covers the KUBE_EXEC_* environment settings, their validators, the
KubernetesConfig they produce and structlog configuration.
"""

import pytest
import structlog
from pydantic import ValidationError

from kube_exec.config import KubernetesConfig, Settings
from kube_exec.utils import get_logger, setup_logging


class TestImagePullPolicyValidator:
    """Tests for image pull policy validation."""

    @pytest.mark.parametrize("policy", ["Always", "IfNotPresent", "Never"])
    def test_accepts_known_policies(self, policy):
        settings = Settings(image_pull_policy=policy)
        assert settings.image_pull_policy == policy

    def test_rejects_invalid_policy(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(image_pull_policy="Sometimes")

        errors = exc_info.value.errors()
        assert any("image_pull_policy" in str(e) for e in errors)

    def test_default_is_if_not_present(self):
        assert Settings().image_pull_policy == "IfNotPresent"


class TestContainerValidator:
    """Tests for empty-string-to-None container sanitization."""

    def test_empty_container_becomes_none(self):
        assert Settings(container="").container is None

    def test_whitespace_container_becomes_none(self):
        assert Settings(container="  ").container is None

    def test_real_container_preserved(self):
        assert Settings(container="main").container == "main"


class TestWatchTimeout:
    """Tests for watch timeout bounds."""

    def test_default_is_ten_minutes(self):
        assert Settings().watch_timeout_seconds == 600

    def test_rejects_zero(self):
        with pytest.raises(ValidationError):
            Settings(watch_timeout_seconds=0)


class TestEnvironment:
    """Tests for reading settings from KUBE_EXEC_* variables."""

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("KUBE_EXEC_NAMESPACE", "jobs")
        monkeypatch.setenv("KUBE_EXEC_IMAGE", "ubuntu:24.04")
        monkeypatch.setenv("KUBE_EXEC_POD_NAME", "kube-example")
        monkeypatch.setenv("KUBE_EXEC_VERBOSE", "true")

        settings = Settings()

        assert settings.namespace == "jobs"
        assert settings.image == "ubuntu:24.04"
        assert settings.pod_name == "kube-example"
        assert settings.verbose is True


class TestKubernetesProperty:
    """Tests for the kubernetes config built from settings."""

    def test_builds_kubernetes_config(self):
        settings = Settings(
            namespace="jobs",
            image="ubuntu",
            pod_name="kube-example",
            container="main",
            image_pull_policy="Always",
            watch_timeout_seconds=30,
            verbose=True,
        )

        k8s = settings.kubernetes

        assert k8s == KubernetesConfig(
            namespace="jobs",
            name="kube-example",
            image="ubuntu",
            container="main",
            image_pull_policy="Always",
            watch_timeout_seconds=30,
            verbose=True,
        )

    def test_label_selector(self):
        assert Settings().kubernetes.label_selector == "heritage=kube-exec"

    def test_custom_heritage(self):
        assert Settings(heritage="ci").kubernetes.label_selector == "heritage=ci"


class TestLogging:
    """Tests for structlog setup."""

    def test_setup_logging_json(self):
        setup_logging(level="DEBUG", log_format="json")
        try:
            assert structlog.is_configured()
            get_logger("kube_exec.test").info("Created pod", pod="kube-example")
        finally:
            structlog.reset_defaults()
