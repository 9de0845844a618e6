"""
Layer boundaries and the invariants contract.

1. payroll_kernel/domain/** performs no I/O: it never imports SQLAlchemy,
   sessions, models, selectors, services or configuration.
2. Only the SettlementReconciler and db.engine open or commit transactions.
3. The invariants declaration is complete.

These tests read source code via AST.
"""

import ast
from pathlib import Path

import payroll_kernel
from payroll_kernel.invariants import (
    ALL_KERNEL_INVARIANTS,
    FORBIDDEN_DOMAIN_IMPORTS,
    KernelInvariant,
)

PACKAGE_ROOT = Path(payroll_kernel.__file__).parent


def _python_files(subdir: str) -> list[Path]:
    return sorted((PACKAGE_ROOT / subdir).rglob("*.py"))


def _extract_imports(path: Path) -> list[tuple[int, str]]:
    tree = ast.parse(path.read_text(), filename=str(path))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _method_calls(path: Path, names: set[str]) -> list[tuple[int, str]]:
    tree = ast.parse(path.read_text(), filename=str(path))
    return [
        (node.lineno, node.func.attr)
        for node in ast.walk(tree)
        if isinstance(node, ast.Call)
        and isinstance(node.func, ast.Attribute)
        and node.func.attr in names
    ]


class TestDomainIsPure:

    def test_domain_has_no_forbidden_imports(self):
        violations = []
        for path in _python_files("domain"):
            for lineno, module in _extract_imports(path):
                for prefix in FORBIDDEN_DOMAIN_IMPORTS:
                    if module == prefix or module.startswith(f"{prefix}."):
                        violations.append(f"{path.name}:{lineno} imports {module}")
        assert not violations, "\n".join(violations)


class TestTransactionOwnership:

    def test_services_and_selectors_never_commit(self):
        violations = []
        for subdir in ("services", "selectors", "domain"):
            for path in _python_files(subdir):
                for lineno, call in _method_calls(path, {"commit"}):
                    # savepoint.commit() releases a nested transaction only
                    source_line = path.read_text().splitlines()[lineno - 1]
                    if "savepoint." in source_line:
                        continue
                    violations.append(f"{path.name}:{lineno} calls {call}()")
        assert not violations, "\n".join(violations)

    def test_only_reconciler_begins_transactions(self):
        owners = {
            path.name
            for path in _python_files("services")
            if any(call == "begin" for _, call in _method_calls(path, {"begin"}))
        }
        assert owners == {"settlement_reconciler.py"}


class TestInvariantsDeclaration:

    def test_required_invariants_declared(self):
        required = {
            "NON_NEGATIVE_BALANCES",
            "SHORTFALL_OVERPAY_EXCLUSIVE",
            "CONSERVATION",
            "PAIRED_AUDIT_RECORD",
            "IMMUTABILITY",
            "PER_STAFF_SERIALIZATION",
            "IDEMPOTENCY",
        }
        assert required <= {inv.name for inv in KernelInvariant}
        assert ALL_KERNEL_INVARIANTS == frozenset(KernelInvariant)
