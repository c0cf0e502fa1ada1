"""
Import and module resolution.

Follows ``#include`` (FunC), ``import`` (Tact, Tolk) and ``mod name;`` (Noir)
directives depth first, one awaited file read at a time. Every resolved path
must stay inside the workspace root after symlinks are followed; imports that
escape it, or that point at missing files, are logged and left out.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Sequence, Set, Tuple

from contract_graph.config import SETTINGS
from contract_graph.errors import WorkspaceViolationError
from contract_graph.fs_utils import confine_to_workspace, read_source
from contract_graph.lexing import strip_comments

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _DirectiveSyntax:
    pattern: Pattern[str]
    extension: str
    line_markers: Tuple[str, ...] = ("//",)
    block_pairs: Tuple[Tuple[str, str], ...] = (("/*", "*/"),)
    nested: bool = False

    def find(self, code: str) -> List[re.Match]:
        stripped = strip_comments(code, self.line_markers, self.block_pairs, nested=self.nested)
        return list(self.pattern.finditer(stripped))


_IMPORT = re.compile(r"^[ \t]*import\s+\"([^\"]+)\"", re.MULTILINE)

_DIRECTIVES: Dict[str, _DirectiveSyntax] = {
    "func": _DirectiveSyntax(
        re.compile(r"#include\s+\"([^\"]+)\""),
        ".fc",
        line_markers=(";;",),
        block_pairs=(("{-", "-}"),),
        nested=True,
    ),
    "tact": _DirectiveSyntax(_IMPORT, ".tact"),
    "tolk": _DirectiveSyntax(_IMPORT, ".tolk"),
    "noir": _DirectiveSyntax(
        re.compile(r"^[ \t]*(?:pub(?:\([^)]*\))?\s+)?mod\s+([A-Za-z_]\w*)\s*;", re.MULTILINE),
        ".nr",
    ),
}

# Files whose child modules live next to them rather than in a same-named folder.
_MODULE_ROOTS = {"main", "lib", "mod"}


@dataclass
class ResolvedSource:
    merged_code: str
    file_paths: List[Path] = field(default_factory=list)


class ImportResolver:
    """
    Recursive import resolver confined to one workspace.

    Args:
        workspace_root: Directory every imported file must live under
        dependency_dir: Package directory searched for ``@scope/pkg`` imports
    """

    def __init__(self, workspace_root: str | Path, dependency_dir: Optional[str] = None):
        self.workspace_root = Path(workspace_root).resolve()
        self.dependency_dir = dependency_dir or SETTINGS.dependency_dir

    async def resolve(
        self,
        code: str,
        file_path: str | Path,
        language_id: str,
        visited: Optional[Set[Path]] = None,
    ) -> ResolvedSource:
        """
        Merge ``code`` with everything it imports.

        Args:
            code: Source of ``file_path``
            file_path: Path of the importing file
            language_id: Registry id selecting the directive syntax
            visited: Canonical paths already merged; updated in place

        Returns:
            Merged source and the imported file paths in resolution order
        """
        file_path = Path(file_path).resolve()
        if visited is None:
            visited = set()
        visited.add(file_path)

        syntax = _DIRECTIVES.get(language_id)
        if syntax is None:
            return ResolvedSource(code)
        if language_id == "noir":
            return await self._inline_modules(code, file_path, syntax, visited)
        return await self._prepend_imports(code, file_path, language_id, syntax, visited)

    async def _load(
        self, target: Path, language_id: str, visited: Set[Path]
    ) -> Optional[ResolvedSource]:
        """Read ``target`` and resolve its own imports, unless already visited."""
        if target in visited:
            logger.debug(f"Skipping already visited import {target}")
            return None
        visited.add(target)
        text = await asyncio.to_thread(read_source, target)
        nested = await self.resolve(text, target, language_id, visited)
        return ResolvedSource(nested.merged_code, [target, *nested.file_paths])

    async def _prepend_imports(
        self,
        code: str,
        file_path: Path,
        language_id: str,
        syntax: _DirectiveSyntax,
        visited: Set[Path],
    ) -> ResolvedSource:
        parts: List[str] = []
        file_paths: List[Path] = []
        for match in syntax.find(code):
            target = self._locate(self._import_candidates(match.group(1), file_path, syntax.extension))
            if target is None:
                continue
            loaded = await self._load(target, language_id, visited)
            if loaded is None:
                continue
            parts.append(loaded.merged_code)
            file_paths.extend(loaded.file_paths)
        parts.append(code)
        return ResolvedSource("\n\n".join(parts), file_paths)

    async def _inline_modules(
        self,
        code: str,
        file_path: Path,
        syntax: _DirectiveSyntax,
        visited: Set[Path],
    ) -> ResolvedSource:
        pieces: List[str] = []
        file_paths: List[Path] = []
        last = 0
        for match in syntax.find(code):
            target = self._locate(self._module_candidates(match.group(1), file_path))
            if target is None:
                continue
            loaded = await self._load(target, "noir", visited)
            if loaded is None:
                continue
            declaration = code[match.start() : match.end()].strip().rstrip(";").rstrip()
            pieces.append(code[last : match.start()])
            pieces.append(f"{declaration} {{\n{loaded.merged_code}\n}}")
            last = match.end()
            file_paths.extend(loaded.file_paths)
        pieces.append(code[last:])
        return ResolvedSource("".join(pieces), file_paths)

    def _import_candidates(self, import_path: str, importing_file: Path, extension: str) -> List[Path]:
        relative = Path(import_path)
        if not relative.suffix:
            relative = relative.with_name(relative.name + extension)
        if import_path.startswith("@"):
            return [
                importing_file.parent / self.dependency_dir / relative,
                self.workspace_root / self.dependency_dir / relative,
            ]
        return [importing_file.parent / relative]

    @staticmethod
    def _module_candidates(name: str, importing_file: Path) -> List[Path]:
        if importing_file.stem in _MODULE_ROOTS:
            base = importing_file.parent
        else:
            base = importing_file.parent / importing_file.stem
        return [base / f"{name}.nr", base / name / "mod.nr"]

    def _locate(self, candidates: Sequence[Path]) -> Optional[Path]:
        """First existing candidate that stays inside the workspace."""
        found = False
        for candidate in candidates:
            if not candidate.exists():
                continue
            found = True
            try:
                return confine_to_workspace(candidate, self.workspace_root)
            except WorkspaceViolationError as e:
                logger.warning(f"Skipping import outside workspace: {e}")
        if not found:
            logger.warning(f"Import not found: {candidates[0]}")
        return None
