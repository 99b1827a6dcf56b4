"""Tests for the shipped analysis agents."""

import textwrap

import pytest

from multiaudit.agents import (
    AgentRegistry,
    AnalysisAgent,
    CodeQualityAgent,
    ConsistencyAgent,
    DocumentationAgent,
    PatternRecognitionAgent,
    SecurityAgent,
    TestingAgent,
    TypeSafetyAgent,
    default_agents,
)
from multiaudit.agents.code_quality import cyclomatic_complexity, nesting_depth
from multiaudit.agents.consistency import naming_style
from multiaudit.agents.patterns import PatternInstance, class_style, dominant_variant, handler_variant
from multiaudit.models import DimensionReport, DimensionStatus, Severity
from multiaudit.source import NodeCategory


async def run_agent(agent: AnalysisAgent, context, *models) -> dict[str, list[DimensionReport]]:
    """Run both phases of one agent and index the reports by dimension."""
    for model in models:
        await agent.collect(model.path, model, context)
    reports: dict[str, list[DimensionReport]] = {}
    for model in models:
        for report in await agent.analyze(model.path, model, context):
            reports.setdefault(report.dimension, []).append(report)
    return reports


def issues_of(reports: dict[str, list[DimensionReport]], dimension: str) -> list:
    return [issue for report in reports.get(dimension, []) for issue in report.issues]


class TestAgentRegistry:
    """Tests for the agent registry."""

    def test_default_agents(self):
        registry = default_agents()
        assert registry.names == [
            "Security",
            "TypeSafety",
            "CodeQuality",
            "Testing",
            "Consistency",
            "PatternRecognition",
            "Documentation",
        ]

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError):
            AgentRegistry([SecurityAgent(), SecurityAgent()])

    def test_without_is_case_insensitive(self):
        registry = default_agents().without(["security", "DOCUMENTATION"])
        assert "Security" not in registry.names
        assert "Documentation" not in registry.names
        assert len(registry) == 5


class TestCodeQualityAgent:
    """Tests for complexity, size and handler checks."""

    @pytest.mark.asyncio
    async def test_complexity_25_is_high_and_fails(self, parse, context, complex_function_source):
        """24 branches give complexity 25, above the critical limit of 20."""
        model = parse(complex_function_source)
        reports = await run_agent(CodeQualityAgent(), context, model)

        report = reports["complexity"][0]
        assert report.status == DimensionStatus.FAIL
        assert len(report.issues) == 1
        issue = report.issues[0]
        assert issue.severity == Severity.HIGH
        assert "25" in issue.message
        assert issue.fixable is False
        assert report.metrics["maxComplexity"] == 25.0

    @pytest.mark.asyncio
    async def test_moderate_complexity_is_medium(self, parse, context):
        branches = "\n".join(f"    if x == {i}:\n        return {i}" for i in range(12))
        model = parse(f"def pick(x):\n{branches}\n    return -1\n")

        reports = await run_agent(CodeQualityAgent(), context, model)

        issue = issues_of(reports, "complexity")[0]
        assert issue.severity == Severity.MEDIUM
        assert reports["complexity"][0].status == DimensionStatus.WARNING

    def test_complexity_ignores_nested_functions(self, parse):
        model = parse(
            """
            def outer(items):
                def inner(x):
                    if x:
                        return 1
                    return 0
                for item in items:
                    inner(item)
            """
        )
        outer = next(f for f in model.find(NodeCategory.FUNCTION) if f.name == "outer")
        assert cyclomatic_complexity(outer) == 2

    def test_nesting_depth(self, parse):
        model = parse(
            """
            def deep(a):
                for x in a:
                    if x:
                        while x:
                            x -= 1
            """
        )
        func = model.find(NodeCategory.FUNCTION)[0]
        assert nesting_depth(func) == 3

    @pytest.mark.asyncio
    async def test_bare_and_empty_handlers(self, parse, context):
        model = parse(
            """
            def load(path):
                try:
                    return open(path).read()
                except:
                    pass
            """
        )
        reports = await run_agent(CodeQualityAgent(), context, model)

        bare = issues_of(reports, "bareExcept")
        assert len(bare) == 1
        assert bare[0].fixable
        assert bare[0].line == 5
        assert len(issues_of(reports, "emptyHandlers")) == 1

    @pytest.mark.asyncio
    async def test_typed_handler_not_bare(self, parse, context):
        model = parse(
            """
            def load(path):
                try:
                    return open(path).read()
                except OSError as e:
                    raise RuntimeError(path) from e
            """
        )
        reports = await run_agent(CodeQualityAgent(), context, model)
        assert issues_of(reports, "bareExcept") == []
        assert issues_of(reports, "emptyHandlers") == []

    @pytest.mark.asyncio
    async def test_cross_file_duplication(self, parse, context):
        body = textwrap.dedent(
            """
            def {name}(rows):
                total = 0
                for row in rows:
                    if row.get("active"):
                        total += row["amount"] * 2
                    else:
                        total -= row["amount"]
                return total
            """
        )
        first = parse(body.format(name="sum_orders"), path="orders.py")
        second = parse(body.format(name="sum_invoices"), path="invoices.py")

        reports = await run_agent(CodeQualityAgent(), context, first, second)

        issues = issues_of(reports, "duplication")
        assert len(issues) == 2
        assert {tuple(i.related_files) for i in issues} == {("orders.py",), ("invoices.py",)}


class TestSecurityAgent:
    """Tests for security checks."""

    @pytest.mark.asyncio
    async def test_hardcoded_secret(self, parse, context):
        model = parse('API_KEY = "sk-live-1234567890abcdef"\nUSER = "admin-account"\n')
        reports = await run_agent(SecurityAgent(), context, model)

        secrets = issues_of(reports, "hardcodedSecrets")
        assert len(secrets) == 1
        assert secrets[0].severity == Severity.CRITICAL
        assert reports["hardcodedSecrets"][0].status == DimensionStatus.FAIL

    @pytest.mark.asyncio
    async def test_placeholders_and_env_lookups_ignored(self, parse, context):
        model = parse(
            """
            import os
            PASSWORD = "changeme"
            TOKEN = os.environ["TOKEN"]
            SECRET = f"{os.environ['PREFIX']}-suffix-value"
            """
        )
        reports = await run_agent(SecurityAgent(), context, model)
        assert issues_of(reports, "hardcodedSecrets") == []

    @pytest.mark.asyncio
    async def test_shell_and_eval(self, parse, context):
        model = parse(
            """
            import os
            import subprocess

            def run(cmd, expr):
                os.system(cmd)
                subprocess.run(cmd, shell=True)
                subprocess.run(["ls", "-l"])
                return eval(expr)
            """
        )
        reports = await run_agent(SecurityAgent(), context, model)

        assert len(issues_of(reports, "shellInjection")) == 2
        assert len(issues_of(reports, "unsafeEval")) == 1
        assert reports["shellInjection"][0].status == DimensionStatus.FAIL


class TestTypeSafetyAgent:
    """Tests for typing checks."""

    @pytest.mark.asyncio
    async def test_any_and_missing_annotations(self, parse, context):
        model = parse(
            """
            from typing import Any

            def load(data: Any) -> dict:
                return {}

            def save(path, data: dict):
                pass

            class Store:
                def __init__(self, root: str):
                    self.root = root

                def _private(self, x):
                    return x
            """
        )
        reports = await run_agent(TypeSafetyAgent(), context, model)

        assert len(issues_of(reports, "anyTypes")) == 1
        missing = issues_of(reports, "missingAnnotations")
        assert len(missing) == 1
        assert "save" in missing[0].message
        assert "path" in missing[0].message
        assert "return" in missing[0].message

    @pytest.mark.asyncio
    async def test_none_comparison_fixability(self, parse, context):
        model = parse(
            """
            def check(a, b):
                if a == None:
                    return 1
                if None != b:
                    return 2
            """
        )
        reports = await run_agent(TypeSafetyAgent(), context, model)

        issues = sorted(issues_of(reports, "noneComparison"), key=lambda i: i.line)
        assert [i.line for i in issues] == [3, 5]
        assert issues[0].fixable is True
        assert issues[1].fixable is False

    @pytest.mark.asyncio
    async def test_bare_type_ignore(self, parse, context):
        model = parse("x: int = 'a'  # type: ignore\ny: int = 'b'  # type: ignore[assignment]\n")
        reports = await run_agent(TypeSafetyAgent(), context, model)
        assert [i.line for i in issues_of(reports, "typeIgnores")] == [1]


class TestConsistencyAgent:
    """Tests for import hygiene and naming."""

    @pytest.mark.asyncio
    async def test_unused_import_on_line_3(self, parse, context, unused_import_source):
        model = parse(unused_import_source, path="main.py")
        reports = await run_agent(ConsistencyAgent(), context, model)

        unused = issues_of(reports, "unusedImports")
        assert len(unused) == 1
        assert unused[0].line == 3
        assert unused[0].fixable
        assert "'os'" in unused[0].message

    @pytest.mark.asyncio
    async def test_import_ordering(self, parse, context):
        model = parse("import sys\nimport os\n\nprint(os, sys)\n")
        reports = await run_agent(ConsistencyAgent(), context, model)

        ordering = issues_of(reports, "importOrdering")
        assert len(ordering) == 1
        assert ordering[0].line == 1

    @pytest.mark.asyncio
    async def test_duplicate_imports(self, parse, context):
        model = parse("from os import path\nfrom os import sep\n\nprint(path, sep)\n")
        reports = await run_agent(ConsistencyAgent(), context, model)

        duplicates = issues_of(reports, "duplicateImports")
        assert [i.line for i in duplicates] == [2]

    @pytest.mark.asyncio
    async def test_naming_follows_dominant_style(self, parse, context):
        model = parse(
            """
            def load_data(): pass
            def save_data(): pass
            def parse_rows(): pass
            def fetch_all(): pass
            def renderPage(): pass
            """
        )
        reports = await run_agent(ConsistencyAgent(), context, model)

        naming = issues_of(reports, "namingConventions")
        assert len(naming) == 1
        assert "renderPage" in naming[0].message
        assert naming[0].fixable is False

    def test_naming_style(self):
        assert naming_style("load_data") == "snake"
        assert naming_style("loadData") == "camel"
        assert naming_style("load") is None
        assert naming_style("__init__") is None


class TestDocumentationAgent:
    """Tests for docstring checks."""

    @pytest.mark.asyncio
    async def test_missing_docs(self, parse, context):
        model = parse(
            '''
            """Module doc."""

            def documented():
                """Has one."""

            def undocumented():
                pass

            def _private():
                pass

            class Widget:
                def draw(self):
                    pass
            '''
        )
        reports = await run_agent(DocumentationAgent(), context, model)

        names = sorted(i.message for i in issues_of(reports, "missingDocs"))
        assert names == [
            "Class 'Widget' has no docstring",
            "Function 'draw' has no docstring",
            "Function 'undocumented' has no docstring",
        ]
        assert issues_of(reports, "moduleDocstring") == []
        assert reports["missingDocs"][0].metrics["docCoverage"] == 0.25

    @pytest.mark.asyncio
    async def test_module_docstring(self, parse, context):
        reports = await run_agent(DocumentationAgent(), context, parse("x = 1\n"))
        issue = issues_of(reports, "moduleDocstring")[0]
        assert issue.severity == Severity.INFO
        assert issue.line == 1

    @pytest.mark.asyncio
    async def test_empty_module_needs_no_docstring(self, parse, context):
        reports = await run_agent(DocumentationAgent(), context, parse(""))
        assert issues_of(reports, "moduleDocstring") == []


class TestTestingAgent:
    """Tests for coverage gap detection."""

    @pytest.mark.asyncio
    async def test_untested_public_function(self, parse, context, write_file):
        test_file = write_file("tests/test_orders.py", "from orders import total\n\ndef test_total():\n    total([])\n")
        context.test_files = [str(test_file)]
        model = parse("def total(rows):\n    return 0\n\ndef refund(order):\n    return None\n", path="orders.py")

        reports = await run_agent(TestingAgent(), context, model)

        gaps = issues_of(reports, "coverageGaps")
        assert len(gaps) == 1
        assert "refund" in gaps[0].message

    @pytest.mark.asyncio
    async def test_no_test_files(self, parse, context):
        model = parse("def total(rows):\n    return 0\n", path="orders.py")
        reports = await run_agent(TestingAgent(), context, model)

        gaps = issues_of(reports, "coverageGaps")
        assert len(gaps) == 1
        assert gaps[0].severity == Severity.INFO


class TestPatternRecognitionAgent:
    """Tests for run-wide pattern dominance checks."""

    @pytest.mark.asyncio
    async def test_handler_prefix_deviation(self, parse, context):
        orders = parse(
            """
            class CreateOrder:
                def execute(self):
                    return 1

            class CancelOrder:
                def execute(self):
                    return 2
            """,
            path="orders.py",
        )
        refunds = parse(
            """
            class Refund:
                def handle(self):
                    return 3
            """,
            path="refunds.py",
        )
        reports = await run_agent(PatternRecognitionAgent(), context, orders, refunds)

        deviations = issues_of(reports, "handlerPattern")
        assert len(deviations) == 1
        assert deviations[0].file == "refunds.py"
        assert deviations[0].line == 3
        assert "'handle'" in deviations[0].message
        assert "2/3" in deviations[0].message
        assert deviations[0].fixable is False

    @pytest.mark.asyncio
    async def test_module_functions_are_not_handlers(self, parse, context):
        model = parse(
            """
            def execute(): pass
            def execute_all(): pass
            def handle(): pass
            """
        )
        reports = await run_agent(PatternRecognitionAgent(), context, model)
        assert issues_of(reports, "handlerPattern") == []
        assert reports["handlerPattern"][0].metrics["totalInstances"] == 0

    @pytest.mark.asyncio
    async def test_returning_handler_flagged_where_most_raise(self, parse, context):
        steps = "\n".join(
            f"def step_{i}(x):\n    try:\n        return int(x)\n    except ValueError:\n        raise\n"
            for i in range(5)
        )
        lenient = "def lenient(x):\n    try:\n        return int(x)\n    except ValueError:\n        return None\n"
        model = parse(steps + "\n" + lenient)
        handler_line = model.lines.index("    except ValueError:", model.lines.index("def lenient(x):")) + 1

        reports = await run_agent(PatternRecognitionAgent(), context, model)

        errors = issues_of(reports, "errorPattern")
        assert [i.line for i in errors] == [handler_line]
        assert '"return"' in errors[0].message
        assert errors[0].severity == Severity.LOW
        assert round(reports["errorPattern"][0].metrics["consistencyScore"], 1) == 83.3

    @pytest.mark.asyncio
    async def test_no_error_pattern_below_dominance(self, parse, context):
        raising = "def a(x):\n    try:\n        return int(x)\n    except ValueError:\n        raise\n"
        returning = "def b(x):\n    try:\n        return int(x)\n    except ValueError:\n        return None\n"
        model = parse(raising + "\n" + raising.replace("def a", "def c") + "\n" + returning)

        reports = await run_agent(PatternRecognitionAgent(), context, model)
        assert issues_of(reports, "errorPattern") == []

    @pytest.mark.asyncio
    async def test_class_naming_deviation(self, parse, context):
        model = parse(
            """
            class OrderService: pass
            class RefundService: pass
            class LedgerEntry: pass
            class invoice_builder: pass
            """
        )
        reports = await run_agent(PatternRecognitionAgent(), context, model)

        naming = issues_of(reports, "namingPattern")
        assert len(naming) == 1
        assert "invoice_builder" in naming[0].message
        assert "PascalCase" in naming[0].message

    @pytest.mark.asyncio
    async def test_test_files_are_ignored(self, parse, context):
        source = """
            class OrderService: pass
            class RefundService: pass
            class LedgerEntry: pass
            class invoice_builder: pass
            """
        reports = await run_agent(PatternRecognitionAgent(), context, parse(source, path="tests/test_models.py"))
        assert issues_of(reports, "namingPattern") == []
        assert reports["namingPattern"][0].metrics["totalInstances"] == 0

    def test_handler_variant(self):
        assert handler_variant("execute") == "execute"
        assert handler_variant("handle_request") == "handle"
        assert handler_variant("processItem") == "process"
        assert handler_variant("_run") == "run"
        assert handler_variant("runner") is None
        assert handler_variant("load") is None

    def test_class_style(self):
        assert class_style("OrderService") == "pascal"
        assert class_style("orderService") == "camel"
        assert class_style("order_service") == "snake"

    def test_dominant_variant_needs_three_instances(self):
        two = [PatternInstance("a.py", 1, "raise"), PatternInstance("a.py", 5, "raise")]
        assert dominant_variant(two, 0.5) == (None, 0, 2)
        three = two + [PatternInstance("a.py", 9, "return")]
        assert dominant_variant(three, 0.5) == ("raise", 2, 3)
        assert dominant_variant(three, 0.8) == (None, 2, 3)
