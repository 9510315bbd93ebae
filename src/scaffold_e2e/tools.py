"""Command lines for the external collaborators.

Each builder returns an argument list. Values may contain {placeholder}
fields (e.g. "{domain}") that the step runner fills from the test context.
"""

from __future__ import annotations

from .config import HarnessConfig


class Toolchain:
    """Build command lines using the configured executables."""

    def __init__(self, config: HarnessConfig):
        self.config = config

    def init(self, project_version: str, domain: str, dep: bool = False) -> list[str]:
        """kubebuilder init."""
        return [
            self.config.kubebuilder_bin,
            "init",
            "--project-version",
            project_version,
            "--domain",
            domain,
            f"--dep={str(dep).lower()}",
        ]

    def create_api(
        self,
        group: str,
        version: str,
        kind: str,
        namespaced: bool = True,
        resource: bool = True,
        controller: bool = True,
        make: bool = False,
    ) -> list[str]:
        """kubebuilder create api."""
        cmd = [
            self.config.kubebuilder_bin,
            "create",
            "api",
            "--group",
            group,
            "--version",
            version,
            "--kind",
            kind,
            f"--namespaced={str(namespaced).lower()}",
            f"--resource={str(resource).lower()}",
            f"--controller={str(controller).lower()}",
            f"--make={str(make).lower()}",
        ]
        return cmd

    def make(self, target: str, *args: str) -> list[str]:
        return [self.config.make_bin, target, *args]

    def load_image(self, image: str) -> list[str]:
        """Load a locally built image into the kind cluster."""
        return [
            self.config.kind_bin,
            "load",
            "docker-image",
            image,
            "--name",
            self.config.kind_cluster,
        ]

    def remove_image(self, image: str) -> list[str]:
        return [self.config.docker_bin, "rmi", "-f", image]

    def kustomize_build(self, directory: str) -> list[str]:
        return [self.config.kustomize_bin, "build", directory]
