"""Webhook source generation for the scaffolded API.

Writes a Go file implementing a defaulting webhook (spec.count defaults to
5) and a validating webhook (spec.count must not be negative) for the
generated kind. The kubebuilder markers in it drive generation of the
mutating and validating admission configurations.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from string import Template

WEBHOOK_TEMPLATE = Template(
    """package ${version}

import (
	"errors"

	"k8s.io/apimachinery/pkg/runtime"
	ctrl "sigs.k8s.io/controller-runtime"
	logf "sigs.k8s.io/controller-runtime/pkg/log"
	"sigs.k8s.io/controller-runtime/pkg/webhook"
)

// log is for logging in this package.
var ${kind_lower}log = logf.Log.WithName("${kind_lower}-resource")

func (r *${kind}) SetupWebhookWithManager(mgr ctrl.Manager) error {
	return ctrl.NewWebhookManagedBy(mgr).
		For(r).
		Complete()
}

// +kubebuilder:webhook:path=/mutate-${group_domain_dashed}-${version}-${kind_lower},mutating=true,failurePolicy=fail,groups=${group_domain},resources=${resources},verbs=create;update,versions=${version},name=m${kind_lower}.${domain}

var _ webhook.Defaulter = &${kind}{}

// Default implements webhook.Defaulter so a webhook will be registered for the type
func (r *${kind}) Default() {
	${kind_lower}log.Info("default", "name", r.Name)

	if r.Spec.Count == 0 {
		r.Spec.Count = 5
	}
}

// +kubebuilder:webhook:verbs=create;update,path=/validate-${group_domain_dashed}-${version}-${kind_lower},mutating=false,failurePolicy=fail,groups=${group_domain},resources=${resources},versions=${version},name=v${kind_lower}.${domain}

var _ webhook.Validator = &${kind}{}

// ValidateCreate implements webhook.Validator so a webhook will be registered for the type
func (r *${kind}) ValidateCreate() error {
	${kind_lower}log.Info("validate create", "name", r.Name)

	return r.validateCount()
}

// ValidateUpdate implements webhook.Validator so a webhook will be registered for the type
func (r *${kind}) ValidateUpdate(old runtime.Object) error {
	${kind_lower}log.Info("validate update", "name", r.Name)

	return r.validateCount()
}

// ValidateDelete implements webhook.Validator so a webhook will be registered for the type
func (r *${kind}) ValidateDelete() error {
	${kind_lower}log.Info("validate delete", "name", r.Name)

	return nil
}

func (r *${kind}) validateCount() error {
	if r.Spec.Count < 0 {
		return errors.New(".spec.count must >= 0")
	}
	return nil
}
"""
)


@dataclass
class WebhookSource:
    """Go source for the defaulting and validating webhooks of one kind."""

    domain: str
    group: str
    version: str
    kind: str
    resources: str

    @property
    def group_domain(self) -> str:
        return f"{self.group}.{self.domain}"

    def render(self) -> str:
        return WEBHOOK_TEMPLATE.substitute(
            version=self.version,
            kind=self.kind,
            kind_lower=self.kind.lower(),
            domain=self.domain,
            group_domain=self.group_domain,
            group_domain_dashed=self.group_domain.replace(".", "-"),
            resources=self.resources,
        )

    def write_to(self, path: Path | str) -> Path:
        """Write the rendered source, replacing any existing file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        return path
