"""
Kernel boundary and invariants contract.

Tests that enforce the kernel's architectural boundaries:

1. pharmacy_kernel/** may NOT import pharmacy_services or pharmacy_config.
   The kernel never depends upward.

2. pharmacy_kernel/domain/** stays pure: no ORM, no DB driver, and no
   models/services/selectors at runtime.

3. Only the kernel services mutate the Medicine ledger; the orchestrator
   reaches it through them.

4. The kernel invariants declaration is complete and non-empty.

These tests read source code via AST; they cannot break anything.
"""

import ast
import glob
from pathlib import Path

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(root: str) -> list[str]:
    """Return all .py files under root, relative to cwd."""
    return sorted(glob.glob(f"{root}/**/*.py", recursive=True))


def _parse(filepath: str) -> ast.Module | None:
    try:
        return ast.parse(Path(filepath).read_text(), filename=filepath)
    except (SyntaxError, UnicodeDecodeError):
        return None


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = _parse(filepath)
    if tree is None:
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _type_checking_lines(tree: ast.Module) -> set[int]:
    """Line numbers of imports nested under ``if TYPE_CHECKING:``."""
    lines: set[int] = set()
    for node in ast.walk(tree):
        if not isinstance(node, ast.If):
            continue
        is_type_checking = (
            isinstance(node.test, ast.Name) and node.test.id == "TYPE_CHECKING"
        ) or (
            isinstance(node.test, ast.Attribute) and node.test.attr == "TYPE_CHECKING"
        )
        if not is_type_checking:
            continue
        for child in node.body:
            for inner in ast.walk(child):
                if isinstance(inner, (ast.Import, ast.ImportFrom)):
                    lines.add(inner.lineno)
    return lines


def _matches(module: str, prefixes: tuple[str, ...]) -> bool:
    return any(module == p or module.startswith(f"{p}.") for p in prefixes)


# ---------------------------------------------------------------------------
# Test: Kernel has no upward dependencies
# ---------------------------------------------------------------------------

class TestKernelNoUpwardDependencies:
    """pharmacy_kernel/** must not import pharmacy_services or pharmacy_config."""

    def test_kernel_does_not_import_forbidden_packages(self):
        from pharmacy_kernel.invariants import FORBIDDEN_KERNEL_IMPORTS

        violations: list[str] = []
        for filepath in _python_files("pharmacy_kernel"):
            for lineno, module in _extract_imports(filepath):
                if _matches(module, FORBIDDEN_KERNEL_IMPORTS):
                    violations.append(f"  {filepath}:{lineno} imports '{module}'")

        assert not violations, (
            "Kernel boundary violation: pharmacy_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )

    def test_kernel_files_found(self):
        assert _python_files("pharmacy_kernel"), "run pytest from the repository root"


# ---------------------------------------------------------------------------
# Test: Kernel domain purity
# ---------------------------------------------------------------------------

class TestKernelDomainPurity:
    """pharmacy_kernel/domain/** must not import ORM, DB or stateful layers."""

    FORBIDDEN_MODULES = (
        "sqlalchemy",
        "psycopg2",
        "psycopg",
        "sqlite3",
        "pharmacy_kernel.db",
        "pharmacy_kernel.models",
        "pharmacy_kernel.services",
        "pharmacy_kernel.selectors",
    )

    def test_domain_no_runtime_orm_imports(self):
        violations: list[str] = []

        for filepath in _python_files("pharmacy_kernel/domain"):
            tree = _parse(filepath)
            if tree is None:
                continue
            allowed = _type_checking_lines(tree)
            for lineno, module in _extract_imports(filepath):
                if lineno in allowed:
                    continue
                if _matches(module, self.FORBIDDEN_MODULES):
                    violations.append(f"  {filepath}:{lineno} imports '{module}'")

        assert not violations, (
            "Domain purity violation: pharmacy_kernel/domain/** must not "
            "import ORM/DB packages at runtime:\n" + "\n".join(violations)
        )

    def test_dtos_reference_models_for_typing_only(self):
        filepath = "pharmacy_kernel/domain/dtos.py"
        tree = _parse(filepath)
        assert tree is not None

        model_imports = [
            lineno
            for lineno, module in _extract_imports(filepath)
            if _matches(module, ("pharmacy_kernel.models",))
        ]
        assert model_imports
        assert set(model_imports) <= _type_checking_lines(tree)


# ---------------------------------------------------------------------------
# Test: Orchestrator goes through the kernel services
# ---------------------------------------------------------------------------

class TestOrchestratorUsesServices:
    """pharmacy_services/ must not touch ORM models directly."""

    def test_no_model_imports_from_services_package(self):
        violations: list[str] = []

        for filepath in _python_files("pharmacy_services"):
            for lineno, module in _extract_imports(filepath):
                if _matches(module, ("pharmacy_kernel.models",)):
                    violations.append(f"  {filepath}:{lineno} imports '{module}'")

        assert not violations, (
            "Ledger boundary violation: pharmacy_services/ must use the "
            "kernel services, not the models:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# Test: Invariants declaration exists and is complete
# ---------------------------------------------------------------------------

class TestKernelInvariantsDeclaration:
    """The kernel invariants contract must be declared and complete."""

    def test_invariants_module_exists(self):
        from pharmacy_kernel.invariants import ALL_KERNEL_INVARIANTS

        assert len(ALL_KERNEL_INVARIANTS) > 0

    def test_required_invariants_declared(self):
        from pharmacy_kernel.invariants import KernelInvariant

        required = {
            "NON_NEGATIVE_STOCK",
            "ORDER_CLOSURE",
            "NO_OVER_SUPPLY",
            "PRICE_MONOTONICITY",
            "ATOMIC_RECONCILIATION",
            "SOFT_DELETE",
        }
        declared = {inv.name for inv in KernelInvariant}
        missing = required - declared
        assert not missing, f"Missing kernel invariants: {missing}"

    def test_forbidden_imports_declared(self):
        from pharmacy_kernel.invariants import FORBIDDEN_KERNEL_IMPORTS

        for pkg in ("pharmacy_services", "pharmacy_config"):
            assert pkg in FORBIDDEN_KERNEL_IMPORTS
