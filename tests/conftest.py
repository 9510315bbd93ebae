"""Shared test fixtures for scaffold-e2e tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from scaffold_e2e.config import ENV_ALIASES, ENV_PREFIX, HarnessConfig
from scaffold_e2e.context import TestContext, create_context, release_suffix

KUSTOMIZATION_TEMPLATE = """\
# Adds namespace to all resources.
namespace: e2e-test-system

namePrefix: e2e-test-

bases:
- ../crd
- ../rbac
- ../manager
# [WEBHOOK] To enable webhook, uncomment all the sections with [WEBHOOK] prefix including the one in crd/kustomization.yaml
#- ../webhook
# [CERTMANAGER] To enable cert-manager, uncomment all sections with 'CERTMANAGER'. 'WEBHOOK' components are required.
#- ../certmanager
# [PROMETHEUS] To enable prometheus monitor, uncomment all sections with 'PROMETHEUS'.
#- ../prometheus

patchesStrategicMerge:
- manager_auth_proxy_patch.yaml
- manager_image_patch.yaml
# [WEBHOOK] To enable webhook, uncomment all the sections with [WEBHOOK] prefix including the one in crd/kustomization.yaml
#- manager_webhook_patch.yaml

# [CERTMANAGER] To enable cert-manager, uncomment next line. 'WEBHOOK' components are required.
#- webhookcainjection_patch.yaml
"""

TYPES_TEMPLATE = """\
package {version}

import (
\tmetav1 "k8s.io/apimachinery/pkg/apis/meta/v1"
)

// {kind}Spec defines the desired state of {kind}
type {kind}Spec struct {{
\t// Foo is an example field of {kind}. Edit {kind_lower}_types.go to remove/update
\tFoo string `json:"foo,omitempty"`
}}

// {kind}Status defines the observed state of {kind}
type {kind}Status struct {{
}}
"""


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep tests away from the real home directory and harness env vars."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX) or name in ENV_ALIASES.values():
            monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def config(tmp_path) -> HarnessConfig:
    """Config rooted in a temp dir, without cluster prerequisites."""
    work_root = tmp_path / "work"
    work_root.mkdir()
    return HarnessConfig(
        work_root=str(work_root),
        install_cert_manager=False,
        poll_interval=0.01,
        poll_timeout=0.05,
    )


@pytest.fixture
def ctx(config):
    """A fresh, unprepared test context."""
    context = create_context(config)
    yield context
    release_suffix(context.suffix)


def _write_generated(ctx: TestContext) -> Path:
    """Lay down the generated files the scenario edits."""
    api_dir = ctx.dir / "api" / ctx.version
    api_dir.mkdir(parents=True, exist_ok=True)
    (api_dir / f"{ctx.kind_lower}_types.go").write_text(
        TYPES_TEMPLATE.format(version=ctx.version, kind=ctx.kind, kind_lower=ctx.kind_lower)
    )
    default_dir = ctx.dir / "config" / "default"
    default_dir.mkdir(parents=True, exist_ok=True)
    (default_dir / "kustomization.yaml").write_text(KUSTOMIZATION_TEMPLATE)
    return ctx.dir


@pytest.fixture
def project(ctx: TestContext) -> Path:
    """Generated project files for ctx."""
    return _write_generated(ctx)


@pytest.fixture
def generator():
    """Callable that writes generated project files, standing in for kubebuilder."""
    return _write_generated
