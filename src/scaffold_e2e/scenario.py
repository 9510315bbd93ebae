"""Webhook project scenario.

Scaffolds a project with an API and admission webhooks, builds and deploys
it to the cluster, then verifies that the controller, certificates, CA
injection, reconciliation and defaulting webhook all converge.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .assertions import (
    assert_contains,
    assert_count_equals,
    assert_equals,
    assert_numeric,
    non_empty_lines,
)
from .config import HarnessConfig
from .context import ContextLifecycle, SideEffect, TeardownReport, TestContext, create_context
from .errors import HarnessError
from .kubectl import Kubectl
from .mutator import AnchorEdit
from .poller import Poller
from .shared.logging import get_logger, scenario_logging
from .steps import Step, StepRunner
from .tools import Toolchain
from .webhook import WebhookSource

logger = get_logger(__name__)

KUSTOMIZATION = "config/default/kustomization.yaml"
OVERLAY_ANCHORS = (
    "#- ../webhook",
    "#- ../certmanager",
    "#- manager_webhook_patch.yaml",
    "#- webhookcainjection_patch.yaml",
)
COUNT_FIELD = "\t// +optional\n\tCount int `json:\"count,omitempty\"`\n"
CERT_SECRET = "webhook-server-cert"
RECONCILED_MESSAGE = "Successfully Reconciled"
DEFAULTED_COUNT = 5
MIN_CA_BUNDLE_LENGTH = 10

POD_NAMES_TEMPLATE = (
    "go-template={{ range .items }}{{ if not .metadata.deletionTimestamp }}"
    '{{ .metadata.name }}{{ "\\n" }}{{ end }}{{ end }}'
)
CA_BUNDLE_TEMPLATE = "go-template={{ range .webhooks }}{{ .clientConfig.caBundle }}{{ end }}"


class ScenarioState(Enum):
    """Stages of the scenario, in order."""

    INIT = "init"
    PREPARED = "prepared"
    API_SCAFFOLDED = "api_scaffolded"
    WEBHOOK_SCAFFOLDED = "webhook_scaffolded"
    OVERLAYS_ENABLED = "overlays_enabled"
    BUILT = "built"
    DEPLOYED = "deployed"
    VERIFIED = "verified"
    TORNDOWN = "torndown"


@dataclass
class ScenarioResult:
    """Verdict of one scenario run."""

    suffix: str
    state: ScenarioState = ScenarioState.INIT
    failed_in: ScenarioState | None = None
    failure: HarnessError | None = None
    teardown: TeardownReport | None = None
    checks: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.failure is None and self.failed_in is None


class WebhookScenario:
    """Drive the scaffold → build → deploy → verify workflow."""

    def __init__(
        self,
        config: HarnessConfig,
        lifecycle: ContextLifecycle | None = None,
        runner: StepRunner | None = None,
        poller: Poller | None = None,
        reporter: Callable[[str], None] | None = None,
    ):
        """Initialize scenario.

        Args:
            config: Harness configuration.
            lifecycle: Context lifecycle manager.
            runner: Step runner for external processes.
            poller: Poller for the verification stage.
            reporter: Optional callback receiving one line per stage or check.
        """
        self.config = config
        self.tools = Toolchain(config)
        self.lifecycle = lifecycle or ContextLifecycle(config)
        self.reporter = reporter
        self.runner = runner or StepRunner(on_step=lambda step: self._report(step.name))
        self.poller = poller or Poller(config.poll_interval, config.poll_timeout)
        self.state = ScenarioState.INIT

    def _report(self, message: str) -> None:
        logger.info("scenario_progress", message=message)
        if self.reporter:
            self.reporter(message)

    def _advance(self, state: ScenarioState) -> None:
        self.state = state
        logger.info("scenario_state", state=state.value)

    def _next_state(self) -> ScenarioState:
        """The stage being attempted from the current state."""
        states = list(ScenarioState)
        return states[min(states.index(self.state) + 1, len(states) - 1)]

    def run(self, ctx: TestContext | None = None) -> ScenarioResult:
        """Run the scenario in a fresh context and always tear it down.

        Harness failures are captured in the result. Interrupts and other
        unexpected exceptions propagate after teardown has run.

        Raises:
            SetupError: If no context was given and none could be allocated.
        """
        ctx = ctx or create_context(self.config)
        result = ScenarioResult(suffix=ctx.suffix)
        self.state = ScenarioState.INIT
        with scenario_logging(ctx.suffix):
            try:
                with self.lifecycle.scoped(ctx):
                    self._advance(ScenarioState.PREPARED)
                    self.execute(ctx, result)
            except HarnessError as e:
                result.failed_in = self._next_state()
                result.failure = e
                logger.error("scenario_failed", stage=result.failed_in.value, error=str(e))
            finally:
                result.teardown = self.lifecycle.last_report
                self._advance(ScenarioState.TORNDOWN)
                result.state = self.state
        return result

    def execute(self, ctx: TestContext, result: ScenarioResult) -> None:
        """Run every stage after preparation. Raises on the first failure."""
        self.scaffold_api(ctx)
        self._advance(ScenarioState.API_SCAFFOLDED)

        self.scaffold_webhook(ctx)
        self._advance(ScenarioState.WEBHOOK_SCAFFOLDED)

        self.enable_overlays(ctx)
        self._advance(ScenarioState.OVERLAYS_ENABLED)

        self.build(ctx)
        self._advance(ScenarioState.BUILT)

        self.deploy(ctx)
        self._advance(ScenarioState.DEPLOYED)

        self.verify(ctx, result)
        self._advance(ScenarioState.VERIFIED)

    def types_file(self, ctx: TestContext) -> str:
        return str(Path("api") / ctx.version / f"{ctx.kind_lower}_types.go")

    def webhook_file(self, ctx: TestContext) -> Path:
        return ctx.dir / "api" / ctx.version / f"{ctx.kind_lower}_webhook.go"

    def sample_file(self, ctx: TestContext) -> str:
        return str(
            Path("config") / "samples" / f"{ctx.group}_{ctx.version}_{ctx.kind_lower}.yaml"
        )

    def scaffold_api(self, ctx: TestContext) -> None:
        self.runner.run(
            ctx,
            [
                Step("init project", tuple(self.tools.init("2", "{domain}"))),
                Step(
                    "create api",
                    tuple(self.tools.create_api("{group}", "{version}", "{kind}")),
                    after=(
                        AnchorEdit.insert(
                            self.types_file(ctx),
                            f"type {ctx.kind}Spec struct {{\n",
                            COUNT_FIELD,
                        ),
                    ),
                ),
            ],
        )

    def scaffold_webhook(self, ctx: TestContext) -> None:
        self._report("write webhook source")
        source = WebhookSource(
            domain=ctx.domain,
            group=ctx.group,
            version=ctx.version,
            kind=ctx.kind,
            resources=ctx.resources,
        )
        try:
            source.write_to(self.webhook_file(ctx))
        except OSError as e:
            raise HarnessError(f"Cannot write webhook source: {e}") from e

    def enable_overlays(self, ctx: TestContext) -> None:
        self._report("enable webhook and CA injection overlays")
        for anchor in OVERLAY_ANCHORS:
            AnchorEdit.uncomment(KUSTOMIZATION, anchor, "#").apply(ctx.dir)

    def build(self, ctx: TestContext) -> None:
        self.runner.run(
            ctx,
            [
                Step(
                    "build image",
                    tuple(self.tools.make("docker-build", "IMG={image}")),
                    records=SideEffect.IMAGE,
                ),
                Step("load image into cluster", tuple(self.tools.load_image("{image}"))),
            ],
        )

    def deploy(self, ctx: TestContext) -> None:
        self.runner.run(
            ctx,
            [
                Step(
                    "deploy controller manager",
                    tuple(self.tools.make("deploy")),
                    attempts=SideEffect.MANIFESTS,
                )
            ],
        )

    def verify(self, ctx: TestContext, result: ScenarioResult) -> None:
        kubectl = self.lifecycle.kubectl_for(ctx, timeout=self.config.kubectl_timeout)
        sample = self.sample_file(ctx)

        checks: list[tuple[str, Callable[[], object]]] = [
            ("controller pod running", lambda: self.check_controller_up(ctx, kubectl)),
            ("certificate secret provisioned", lambda: kubectl.get(True, "secrets", CERT_SECRET)),
            ("CA bundle injected", lambda: self.check_ca_injection(ctx, kubectl)),
            ("sample resource applied", lambda: kubectl.apply(True, "-f", sample)),
            ("resource reconciled", lambda: self.check_reconciled(ctx, kubectl)),
        ]
        for name, check in checks:
            self._report(f"wait: {name}")
            self.poller.poll(check, description=name)
            result.checks.append(name)

        self._report("check: defaulting webhook applied")
        self.check_defaulted(kubectl, sample)
        result.checks.append("defaulting webhook applied")

    def check_controller_up(self, ctx: TestContext, kubectl: Kubectl) -> str:
        output = kubectl.get(
            True, "pods", "-l", "control-plane=controller-manager", "-o", POD_NAMES_TEMPLATE
        )
        pod_names = non_empty_lines(output)
        assert_count_equals(pod_names, 1, "controller pods")
        pod = pod_names[0]
        assert_contains(pod, "controller-manager", "controller pod name")

        status = kubectl.get(True, "pods", pod, "-o", "jsonpath={.status.phase}")
        assert_equals(status.strip(), "Running", f"pod {pod} phase")
        ctx.controller_pod = pod
        return pod

    def check_ca_injection(self, ctx: TestContext, kubectl: Kubectl) -> None:
        for kind in ("mutating", "validating"):
            output = kubectl.get(
                False,
                f"{kind}webhookconfigurations.admissionregistration.k8s.io",
                f"e2e-{ctx.suffix}-{kind}-webhook-configuration",
                "-o",
                CA_BUNDLE_TEMPLATE,
            )
            # a bare placeholder newline is not a CA
            assert_numeric(
                len(output), ">", MIN_CA_BUNDLE_LENGTH, f"{kind} webhook caBundle length"
            )

    def check_reconciled(self, ctx: TestContext, kubectl: Kubectl) -> None:
        if not ctx.controller_pod:
            raise HarnessError("controller pod not known")
        logs = kubectl.logs(ctx.controller_pod, "-c", "manager")
        assert_contains(logs, RECONCILED_MESSAGE, "manager logs")

    def check_defaulted(self, kubectl: Kubectl, sample: str) -> None:
        count = kubectl.get(True, "-f", sample, "-o", "go-template={{ .spec.count }}")
        assert_numeric(count, "==", DEFAULTED_COUNT, "spec.count")
