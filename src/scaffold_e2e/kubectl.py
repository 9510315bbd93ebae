"""Cluster query/apply interface.

Thin wrapper over the kubectl binary. Output is returned as plain text;
its shape depends on the -o template the caller passes.
"""

from __future__ import annotations

from pathlib import Path

from .shell import run_command


class Kubectl:
    """Run kubectl against the cluster, optionally scoped to a namespace."""

    def __init__(
        self,
        namespace: str | None = None,
        kubectl_bin: str = "kubectl",
        env: dict[str, str] | None = None,
        cwd: Path | str | None = None,
        timeout: float | None = None,
    ):
        """Initialize client.

        Args:
            namespace: Namespace added to namespaced calls with -n.
            kubectl_bin: kubectl executable.
            env: Extra environment variables for each call.
            cwd: Working directory, so relative -f paths resolve in the workspace.
            timeout: Seconds before a call is killed and reported as failed.
                None waits indefinitely.
        """
        self.namespace = namespace
        self.kubectl_bin = kubectl_bin
        self.env = env
        self.cwd = cwd
        self.timeout = timeout

    def _kubectl_cmd(self, namespaced: bool) -> list[str]:
        """Build base kubectl command."""
        cmd = [self.kubectl_bin]
        if namespaced and self.namespace:
            cmd.extend(["-n", self.namespace])
        return cmd

    def command(self, *args: str, namespaced: bool = False, stdin: str | None = None) -> str:
        """Run an arbitrary kubectl command and return stdout.

        Raises:
            CommandError: If kubectl exits non-zero or exceeds the timeout.
        """
        result = run_command(
            self._kubectl_cmd(namespaced) + list(args),
            cwd=self.cwd,
            env=self.env,
            stdin=stdin,
            timeout=self.timeout,
        )
        return result.check().stdout

    def get(self, namespaced: bool, *args: str) -> str:
        """kubectl get, e.g. get(True, "pods", "-o", "jsonpath={.items[*].metadata.name}")."""
        return self.command("get", *args, namespaced=namespaced)

    def apply(self, namespaced: bool, *args: str) -> str:
        return self.command("apply", *args, namespaced=namespaced)

    def delete(self, namespaced: bool, *args: str, stdin: str | None = None) -> str:
        return self.command("delete", *args, namespaced=namespaced, stdin=stdin)

    def logs(self, *args: str) -> str:
        """kubectl logs in the context namespace."""
        return self.command("logs", *args, namespaced=True)

    def wait(self, namespaced: bool, *args: str) -> str:
        return self.command("wait", *args, namespaced=namespaced)
