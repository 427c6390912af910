"""Python adapter: import and attribute-usage facts via the ``ast`` module."""

from __future__ import annotations

import ast
from pathlib import Path

from reachvet.languages.base import Language, LanguageAdapter
from reachvet.models.facts import (
    CodeLocation,
    FileFacts,
    ImportFact,
    ImportStyle,
    ParseWarning,
    UsageFact,
)

_PROJECT_INDICATORS = (
    "requirements.txt",
    "setup.py",
    "setup.cfg",
    "pyproject.toml",
    "Pipfile",
    "poetry.lock",
    "environment.yml",
)

_SNIPPET_MAX = 120


class _FactVisitor(ast.NodeVisitor):
    """Collect imports, bound names and ``name.member`` accesses in one pass."""

    def __init__(self, file: str, lines: list[str]) -> None:
        self.file = file
        self.lines = lines
        self.imports: list[ImportFact] = []
        self.usages: list[UsageFact] = []
        self.warnings: list[ParseWarning] = []
        self._bindings: dict[str, str] = {}  # local name -> module
        self._conditional_depth = 0

    def _loc(self, node: ast.AST) -> CodeLocation:
        line = getattr(node, "lineno", 0)
        snippet = None
        if 0 < line <= len(self.lines):
            snippet = self.lines[line - 1].strip()[:_SNIPPET_MAX] or None
        return CodeLocation(
            file=self.file,
            line=line,
            column=getattr(node, "col_offset", 0) + 1,
            snippet=snippet,
        )

    # ── conditional context ──────────────────────────────────────────────

    def _visit_conditional(self, node: ast.AST) -> None:
        self._conditional_depth += 1
        self.generic_visit(node)
        self._conditional_depth -= 1

    visit_If = _visit_conditional
    visit_Try = _visit_conditional
    visit_TryStar = _visit_conditional

    # ── imports ──────────────────────────────────────────────────────────

    def visit_Import(self, node: ast.Import) -> None:
        for name in node.names:
            self.imports.append(
                ImportFact(
                    module=name.name,
                    style=ImportStyle.WHOLE_MODULE,
                    location=self._loc(node),
                    alias=name.asname,
                    conditional=self._conditional_depth > 0,
                )
            )
            if name.asname:
                self._bindings[name.asname] = name.name
            else:
                # "import a.b" binds "a"
                top = name.name.split(".")[0]
                self._bindings.setdefault(top, top)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.level or not node.module:
            return  # relative import: project-local
        loc = self._loc(node)
        if any(n.name == "*" for n in node.names):
            self.imports.append(
                ImportFact(
                    module=node.module,
                    style=ImportStyle.WILDCARD,
                    location=loc,
                    conditional=self._conditional_depth > 0,
                )
            )
            return
        self.imports.append(
            ImportFact(
                module=node.module,
                style=ImportStyle.SELECTIVE,
                location=loc,
                members=tuple(n.name for n in node.names),
                conditional=self._conditional_depth > 0,
            )
        )

    # ── usages ───────────────────────────────────────────────────────────

    def visit_Attribute(self, node: ast.Attribute) -> None:
        chain: list[str] = [node.attr]
        value = node.value
        while isinstance(value, ast.Attribute):
            chain.append(value.attr)
            value = value.value
        if isinstance(value, ast.Name) and value.id in self._bindings:
            chain.reverse()
            module = ".".join([self._bindings[value.id], *chain[:-1]])
            self.usages.append(UsageFact(module=module, member=chain[-1], location=self._loc(node)))
            return
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        target = _dynamic_import_target(node)
        if target is not None:
            kind, module = target
            loc = self._loc(node)
            self.warnings.append(
                ParseWarning(
                    code="dynamic_import",
                    message=f"{kind}() detected" + (f" for module: {module}" if module else ""),
                    line=loc.line,
                )
            )
            if module:
                self.imports.append(
                    ImportFact(
                        module=module,
                        style=ImportStyle.WHOLE_MODULE,
                        location=loc,
                        conditional=True,
                    )
                )
        self.generic_visit(node)


def _dynamic_import_target(node: ast.Call) -> tuple[str, str | None] | None:
    func = node.func
    if isinstance(func, ast.Name) and func.id == "__import__":
        kind = "__import__"
    elif (
        isinstance(func, ast.Attribute)
        and func.attr == "import_module"
        and isinstance(func.value, ast.Name)
        and func.value.id == "importlib"
    ):
        kind = "importlib.import_module"
    else:
        return None
    module = None
    if node.args and isinstance(node.args[0], ast.Constant) and isinstance(node.args[0].value, str):
        module = node.args[0].value
    return kind, module


class PythonAdapter(LanguageAdapter):
    language = Language.PYTHON
    file_extensions = (".py", ".pyw")
    ignore_dirs = frozenset(
        {
            ".git",
            "venv",
            ".venv",
            "env",
            ".env",
            "site-packages",
            "dist-packages",
            "__pycache__",
            "build",
            "dist",
            ".tox",
            ".nox",
            ".pytest_cache",
            ".mypy_cache",
            "node_modules",
        }
    )

    def can_handle(self, source_dir: Path) -> bool:
        if any((source_dir / name).exists() for name in _PROJECT_INDICATORS):
            return True
        return bool(self.find_source_files(source_dir))

    def parse_file(self, path: Path, content: str) -> FileFacts:
        file = str(path)
        try:
            tree = ast.parse(content, filename=file)
        except (SyntaxError, ValueError) as exc:
            line = getattr(exc, "lineno", None)
            return FileFacts(
                file=file,
                warnings=(ParseWarning(code="syntax_error", message=str(exc), line=line),),
            )

        visitor = _FactVisitor(file, content.splitlines())
        visitor.visit(tree)
        return FileFacts(
            file=file,
            import_facts=tuple(visitor.imports),
            usage_facts=tuple(visitor.usages),
            warnings=tuple(visitor.warnings),
        )
