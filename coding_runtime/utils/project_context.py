# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Project discovery

A quick, filesystem-only look at a working directory: a shallow tree, the
dependency manifests present and the likely entry points. The result is
folded into the agent's system prompt.
"""

import logging

from pathlib import Path
from datetime import datetime
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

IGNORED_DIRS = {
    "node_modules",
    "vendor",
    "__pycache__",
    ".venv",
    "venv",
    "dist",
    "build",
    "target",
    ".git",
    ".idea",
    ".vscode",
    "coverage",
    ".cache",
}

MANIFESTS = {
    "package.json": "Node.js",
    "pyproject.toml": "Python",
    "requirements.txt": "Python",
    "setup.py": "Python",
    "Cargo.toml": "Rust",
    "go.mod": "Go",
    "pom.xml": "Java",
    "build.gradle": "Java",
    "composer.json": "PHP",
    "Gemfile": "Ruby",
    "tsconfig.json": "TypeScript",
}

ENTRY_POINTS = [
    "README.md",
    "README.rst",
    "README.txt",
    "README",
    "__main__.py",
    "main.py",
    "app.py",
    "index.js",
    "index.ts",
    "main.js",
    "main.ts",
    "main.go",
    "app.js",
    "app.ts",
]

MAX_ITEMS_PER_DIR = 10
MAX_ENTRY_POINTS = 5


class ProjectContext(BaseModel):
    working_directory: str
    project_structure: str = ""
    tech_stack: list[str] = Field(default_factory=list)
    entry_points: list[str] = Field(default_factory=list)
    summary: str = ""
    executed_at: datetime = Field(default_factory=datetime.now)

    def format_for_prompt(self) -> str:
        return (
            "<PROJECT_CONTEXT>\n"
            f"{self.summary}\n\n"
            f"Project structure:\n{self.project_structure or '(unavailable)'}\n\n"
            f"Dependency manifests: {', '.join(self.tech_stack) or 'none found'}\n"
            f"Entry points: {', '.join(self.entry_points) or 'none found'}\n"
            "</PROJECT_CONTEXT>"
        )


def _gitignored_dirs(root: Path) -> set[str]:
    """Plain directory names from the root .gitignore; globs are skipped."""
    gitignore = root / ".gitignore"
    if not gitignore.is_file():
        return set()
    names = set()
    try:
        lines = gitignore.read_text(errors="replace").splitlines()
    except OSError:
        return set()
    for line in lines:
        entry = line.strip()
        if not entry or entry.startswith(("#", "!")) or any(c in entry for c in "*?["):
            continue
        first = entry.strip("/").split("/")[0]
        if first:
            names.add(first)
    return names


def _tree_lines(directory: Path, ignored: set[str], prefix: str, depth: int, max_depth: int) -> list[str]:
    if depth >= max_depth:
        return []
    try:
        items = [
            p for p in directory.iterdir() if not p.name.startswith(".") and p.name not in ignored
        ]
    except OSError:
        return []
    items.sort(key=lambda p: (not p.is_dir(), p.name))

    lines = []
    shown = items[:MAX_ITEMS_PER_DIR]
    for i, item in enumerate(shown):
        last = i == len(shown) - 1
        connector = "└── " if last else "├── "
        if item.is_dir():
            lines.append(f"{prefix}{connector}{item.name}/")
            lines.extend(
                _tree_lines(item, ignored, prefix + ("    " if last else "│   "), depth + 1, max_depth)
            )
        else:
            lines.append(f"{prefix}{connector}{item.name}")
    if len(items) > MAX_ITEMS_PER_DIR:
        lines.append(f"{prefix}...and {len(items) - MAX_ITEMS_PER_DIR} more")
    return lines


def build_tree(root: Path, max_depth: int = 3) -> str:
    lines = _tree_lines(root, IGNORED_DIRS | _gitignored_dirs(root), "", 0, max_depth)
    dirs = sum(1 for line in lines if line.endswith("/"))
    files = sum(1 for line in lines if not line.endswith("/") and "...and" not in line)
    return "\n".join(
        [f"{root.name}/", *lines, "", f"{dirs} director{'y' if dirs == 1 else 'ies'}, {files} file{'' if files == 1 else 's'}"]
    )


def _find_existing(root: Path, names) -> list[str]:
    found = []
    for base, label in ((root, ""), (root / "src", "src/")):
        if not base.is_dir():
            continue
        found.extend(f"{label}{name}" for name in names if (base / name).exists())
    return found


def _summarise(root: Path, structure: str, tech_stack: list[str], entry_points: list[str]) -> str:
    lines = [f"{root.name} project"]
    languages = sorted({MANIFESTS[Path(m).name] for m in tech_stack})
    if languages:
        lines.append(f"Languages: {', '.join(languages)}")
    if entry_points:
        lines.append(f"Key files: {', '.join(entry_points)}")
    top_level = {line.strip("├└─│ /") for line in structure.splitlines()[1:]}
    if "src" in top_level:
        lines.append("Has a src/ directory")
    if top_level & {"test", "tests"}:
        lines.append("Has a test directory")
    if "docs" in top_level:
        lines.append("Has a docs directory")
    return "\n".join(lines)


def discover_project(workdir: Path | str) -> ProjectContext:
    """Inspect `workdir`; a missing directory or a read failure gives a minimal context."""
    root = Path(workdir).resolve()
    minimal = ProjectContext(working_directory=str(root), summary=f"Basic project in {root.name}")
    if not root.is_dir():
        return minimal

    try:
        structure = build_tree(root)
        tech_stack = _find_existing(root, MANIFESTS)
        entry_points = _find_existing(root, ENTRY_POINTS)[:MAX_ENTRY_POINTS]
    except OSError as e:
        logger.warning(f"Project discovery failed for {root}: {e}")
        return minimal

    return ProjectContext(
        working_directory=str(root),
        project_structure=structure,
        tech_stack=tech_stack,
        entry_points=entry_points,
        summary=_summarise(root, structure, tech_stack, entry_points),
    )
