"""Test context lifecycle.

A TestContext isolates one scenario run on a shared cluster: every
cluster-visible name, the workspace directory and the image tag carry a
random suffix. Side effects are recorded on the context as they happen
so teardown can reverse exactly what was done.
"""

from __future__ import annotations

import secrets
import shutil
import string
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .config import HarnessConfig
from .errors import CommandError, HarnessError, SetupError
from .kubectl import Kubectl
from .shared.logging import get_logger, scenario_logging
from .shell import run_command
from .tools import Toolchain

logger = get_logger(__name__)

SUFFIX_LENGTH = 4
MAX_SUFFIX_ATTEMPTS = 32

_active_suffixes: set[str] = set()
_suffix_lock = threading.Lock()


class SideEffect(Enum):
    """Reversible changes a scenario makes outside the Python process."""

    WORKSPACE = "workspace"  # Workspace directory created
    CERT_MANAGER = "cert_manager"  # cert-manager bundle applied
    IMAGE = "image"  # Container image built and tagged
    MANIFESTS = "manifests"  # Project manifests deployed, possibly partially


@dataclass
class TestContext:
    """Identifiers and recorded state for one isolated scenario run."""

    __test__ = False  # not a pytest test class

    suffix: str
    dir: Path
    domain: str
    group: str
    version: str
    kind: str
    resources: str
    image: str
    namespace: str
    env: dict[str, str] = field(default_factory=dict)
    side_effects: list[SideEffect] = field(default_factory=list)
    controller_pod: str | None = None
    destroyed: bool = False

    @property
    def kind_lower(self) -> str:
        return self.kind.lower()

    def values(self) -> dict[str, str]:
        """Placeholder values for step arguments and edit paths."""
        return {
            "suffix": self.suffix,
            "dir": str(self.dir),
            "domain": self.domain,
            "group": self.group,
            "version": self.version,
            "kind": self.kind,
            "kind_lower": self.kind_lower,
            "resources": self.resources,
            "image": self.image,
            "namespace": self.namespace,
        }

    def record(self, effect: SideEffect) -> None:
        if effect not in self.side_effects:
            self.side_effects.append(effect)


@dataclass
class TeardownReport:
    """Outcome of destroying a context."""

    reversed: list[SideEffect] = field(default_factory=list)
    kept: list[SideEffect] = field(default_factory=list)
    errors: dict[SideEffect, str] = field(default_factory=dict)

    @property
    def clean(self) -> bool:
        return not self.errors


def random_suffix(length: int = SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(string.ascii_lowercase) for _ in range(length))


def create_context(config: HarnessConfig) -> TestContext:
    """Allocate a context with a suffix unused by any active context.

    Raises:
        SetupError: If no free suffix was found.
    """
    work_root = Path(config.work_root).resolve()
    with _suffix_lock:
        for _ in range(MAX_SUFFIX_ATTEMPTS):
            suffix = random_suffix()
            workspace = work_root / f"e2e-{suffix}"
            if suffix in _active_suffixes or workspace.exists():
                continue
            _active_suffixes.add(suffix)
            break
        else:
            raise SetupError("Could not allocate a unique test suffix")

    ctx = TestContext(
        suffix=suffix,
        dir=workspace,
        domain=f"example.com{suffix}",
        group=f"bar{suffix}",
        version="v1alpha1",
        kind=f"Foo{suffix}",
        resources=f"foo{suffix}s",
        image=f"e2e-test/controller-manager:{suffix}",
        namespace=f"e2e-{suffix}-system",
        env=dict(config.go_env),
    )
    logger.info("context_created", suffix=suffix, dir=str(workspace))
    return ctx


def release_suffix(suffix: str) -> None:
    with _suffix_lock:
        _active_suffixes.discard(suffix)


class ContextLifecycle:
    """Prepare and destroy test contexts."""

    def __init__(self, config: HarnessConfig, kubectl: Kubectl | None = None):
        """Initialize lifecycle manager.

        Args:
            config: Harness configuration.
            kubectl: Cluster client for prerequisite installs. Defaults to an
                unscoped client built from the config.
        """
        self.config = config
        self.tools = Toolchain(config)
        self.kubectl = kubectl or Kubectl(kubectl_bin=config.kubectl_bin)
        self.last_report: TeardownReport | None = None

    def kubectl_for(self, ctx: TestContext, timeout: float | None = None) -> Kubectl:
        """Cluster client scoped to the context namespace and workspace.

        Args:
            ctx: Context whose namespace and workspace the client uses.
            timeout: Optional per-call limit in seconds. A call that exceeds
                it fails with CommandError instead of blocking.
        """
        return Kubectl(
            namespace=ctx.namespace,
            kubectl_bin=self.config.kubectl_bin,
            env=ctx.env,
            cwd=ctx.dir,
            timeout=timeout,
        )

    def prepare(self, ctx: TestContext) -> None:
        """Create the workspace and install prerequisite cluster components.

        Raises:
            SetupError: If any part of preparation failed. Effects recorded
                before the failure are still reversed by destroy.
        """
        try:
            ctx.dir.mkdir(parents=True, exist_ok=False)
        except FileExistsError:
            raise SetupError(f"Workspace already exists: {ctx.dir}") from None
        except OSError as e:
            raise SetupError(f"Cannot create workspace {ctx.dir}: {e}") from e
        ctx.record(SideEffect.WORKSPACE)
        logger.info("workspace_created", dir=str(ctx.dir))

        if self.config.install_cert_manager:
            self.install_cert_manager(ctx)

    def cert_manager_present(self) -> bool:
        try:
            self.kubectl.get(
                False, "deployment.apps/cert-manager-webhook", "--namespace", "cert-manager"
            )
        except CommandError:
            return False
        return True

    def install_cert_manager(self, ctx: TestContext) -> None:
        """Apply the cert-manager bundle and wait for its webhook.

        cert-manager is cluster-wide, not per context. If it was already
        running before apply (installed by hand or by a concurrent
        scenario), this context does not record it, so its teardown never
        removes a cert-manager that others depend on.
        """
        url = self.config.cert_manager_url
        preinstalled = self.cert_manager_present()
        try:
            self.kubectl.apply(False, "--validate=false", "-f", url)
            if not preinstalled:
                ctx.record(SideEffect.CERT_MANAGER)
            self.kubectl.wait(
                False,
                "deployment.apps/cert-manager-webhook",
                "--for",
                "condition=Available",
                "--namespace",
                "cert-manager",
                "--timeout",
                self.config.cert_manager_timeout,
            )
        except HarnessError as e:
            raise SetupError(f"Failed to install cert-manager: {e}") from e
        logger.info("cert_manager_installed", url=url, preinstalled=preinstalled)

    def destroy(self, ctx: TestContext) -> TeardownReport:
        """Reverse every recorded side effect, newest first.

        Best-effort: each reversal is isolated and errors are collected in
        the report rather than raised. Calling destroy twice, or on a
        context that was never prepared, is safe.
        """
        report = TeardownReport()
        if ctx.destroyed:
            return report

        handlers = {
            SideEffect.MANIFESTS: self._cleanup_manifests,
            SideEffect.CERT_MANAGER: self._uninstall_cert_manager,
            SideEffect.IMAGE: self._remove_image,
            SideEffect.WORKSPACE: self._remove_workspace,
        }
        keep = {SideEffect.WORKSPACE, SideEffect.IMAGE} if self.config.keep_workspace else set()

        for effect in reversed(list(ctx.side_effects)):
            if effect in keep:
                report.kept.append(effect)
                continue
            try:
                handlers[effect](ctx)
            except Exception as e:
                report.errors[effect] = str(e)
                logger.error("teardown_error", effect=effect.value, error=str(e))
            else:
                report.reversed.append(effect)
            ctx.side_effects.remove(effect)

        ctx.destroyed = True
        release_suffix(ctx.suffix)
        logger.info(
            "context_destroyed",
            reversed=[e.value for e in report.reversed],
            kept=[e.value for e in report.kept],
            errors=len(report.errors),
        )
        return report

    @contextmanager
    def scoped(self, ctx: TestContext) -> Iterator[TestContext]:
        """Prepare on entry, destroy on every exit path.

        Events logged inside the block carry the context suffix. The
        teardown report is stored on the lifecycle as last_report.
        """
        self.last_report = None
        with scenario_logging(ctx.suffix):
            try:
                self.prepare(ctx)
                yield ctx
            finally:
                self.last_report = self.destroy(ctx)

    def _cleanup_manifests(self, ctx: TestContext) -> None:
        rendered = run_command(
            self.tools.kustomize_build(str(Path("config") / "default")),
            cwd=ctx.dir,
            env=ctx.env,
        ).check()
        self.kubectl_for(ctx).delete(
            False, "--ignore-not-found", "-f", "-", stdin=rendered.stdout
        )

    def _uninstall_cert_manager(self, ctx: TestContext) -> None:
        self.kubectl.delete(False, "-f", self.config.cert_manager_url)

    def _remove_image(self, ctx: TestContext) -> None:
        run_command(self.tools.remove_image(ctx.image)).check()

    def _remove_workspace(self, ctx: TestContext) -> None:
        if ctx.dir.exists():
            shutil.rmtree(ctx.dir)
