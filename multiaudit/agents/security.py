"""Security agent: secrets, shell injection, dynamic evaluation."""

import re
import time

from multiaudit.agents.base import AnalysisAgent, AnalysisContext
from multiaudit.models import DimensionReport, Issue
from multiaudit.source import NodeCategory, SourceModel, SourceNode
from multiaudit.source.python import string_value

_SECRET_NAME = re.compile(
    r"(?i)(password|passwd|secret|token|api_?key|private_?key|access_?key|credential)"
)
_PLACEHOLDER = re.compile(r"^(\$\{.*\}|<.*>|x+|\*+|changeme|your[-_ ].*)$", re.IGNORECASE)
_MIN_SECRET_LENGTH = 8

_SHELL_CALLS = frozenset({"os.system", "os.popen", "commands.getoutput", "commands.getstatusoutput"})
_EVAL_CALLS = frozenset({"eval", "exec", "builtins.eval", "builtins.exec"})


def _literal_secret(value: SourceNode | None) -> str | None:
    """Return the literal value if ``value`` is a plain, non-placeholder string."""
    if value is None or value.kind != "string":
        return None
    if any(child.kind == "interpolation" for child in value.children):
        return None
    text = string_value(value.text)
    if len(text) < _MIN_SECRET_LENGTH or _PLACEHOLDER.match(text):
        return None
    return text


class SecurityAgent(AnalysisAgent):
    """Flags patterns that leak credentials or execute untrusted input."""

    name = "Security"
    dimensions = ("hardcodedSecrets", "shellInjection", "unsafeEval")

    async def analyze(
        self,
        file: str,
        model: SourceModel,
        context: AnalysisContext,
    ) -> list[DimensionReport]:
        started = time.perf_counter()
        secrets: list[Issue] = []
        shell: list[Issue] = []
        evals: list[Issue] = []

        for node, _ in model.walk():
            match node.kind:
                case "assignment":
                    issue = self._check_secret(file, node, node.field("left"), node.field("right"))
                    if issue:
                        secrets.append(issue)
                case "keyword_argument":
                    issue = self._check_secret(file, node, node.field("name"), node.field("value"))
                    if issue:
                        secrets.append(issue)
                case _ if node.category == NodeCategory.CALL:
                    callee = node.field("function")
                    name = callee.text if callee else ""
                    if name in _EVAL_CALLS:
                        evals.append(
                            self.create_issue(
                                "unsafeEval",
                                file,
                                f"Call to {name}() executes arbitrary code",
                                node=node,
                                suggestion="Use ast.literal_eval or an explicit dispatch table",
                            )
                        )
                    elif self._runs_shell(name, node):
                        shell.append(
                            self.create_issue(
                                "shellInjection",
                                file,
                                f"{name}() runs its command through a shell",
                                node=node,
                                suggestion="Pass an argument list to subprocess.run without shell=True",
                            )
                        )

        return [
            self.build_report("hardcodedSecrets", secrets, started=started),
            self.build_report("shellInjection", shell, started=started),
            self.build_report("unsafeEval", evals, started=started),
        ]

    def _check_secret(
        self,
        file: str,
        node: SourceNode,
        target: SourceNode | None,
        value: SourceNode | None,
    ) -> Issue | None:
        if target is None or target.kind not in ("identifier", "attribute"):
            return None
        name = target.text.rsplit(".", 1)[-1]
        if not _SECRET_NAME.search(name):
            return None
        if _literal_secret(value) is None:
            return None
        return self.create_issue(
            "hardcodedSecrets",
            file,
            f"Possible hardcoded secret assigned to '{name}'",
            node=node,
            suggestion="Load the value from the environment or a secrets manager",
        )

    @staticmethod
    def _runs_shell(name: str, call: SourceNode) -> bool:
        if name in _SHELL_CALLS:
            return True
        if not name.startswith("subprocess."):
            return False
        arguments = call.field("arguments")
        if arguments is None:
            return False
        for argument in arguments.children:
            if argument.kind != "keyword_argument":
                continue
            key = argument.field("name")
            value = argument.field("value")
            if key and value and key.text == "shell" and value.text == "True":
                return True
        return False
