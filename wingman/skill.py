"""Discovery of agent skills described by SKILL.md files."""

from __future__ import annotations

import os
from dataclasses import dataclass

import yaml

SKILL_DIRS = (".skills", ".github", ".claude", ".opencode")
SKILL_FILE = "SKILL.md"


@dataclass
class Skill:
    """A skill's name and description, and the directory it lives in."""

    name: str = ""
    description: str = ""
    location: str = ""


def _skill_files(skill_dir: str) -> list[str]:
    found: list[str] = []
    for dirpath, dirnames, filenames in os.walk(skill_dir):
        dirnames.sort()
        if SKILL_FILE in filenames:
            found.append(os.path.join(dirpath, SKILL_FILE))
    return found


def discover(root: str) -> list[Skill]:
    """Find the valid skills in the known skill directories under ``root``."""
    skills: list[Skill] = []
    for directory in SKILL_DIRS:
        for skill_file in _skill_files(os.path.join(root, directory)):
            try:
                skill = parse_skill_metadata(skill_file)
            except (OSError, ValueError):
                continue
            location = os.path.dirname(skill_file)
            try:
                location = os.path.relpath(location, root)
            except ValueError:
                pass
            skill.location = location
            skills.append(skill)
    return skills


def _frontmatter(path: str) -> str:
    lines: list[str] = []
    in_frontmatter = False
    with open(path, encoding="utf-8", newline="") as handle:
        for raw in handle:
            line = raw.removesuffix("\n").removesuffix("\r")
            if line == "---":
                if not in_frontmatter:
                    in_frontmatter = True
                    continue
                break
            if in_frontmatter:
                lines.append(line + "\n")
    return "".join(lines)


def _field(document: dict, key: str) -> str:
    value = document.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"failed to parse frontmatter: {key} must be a string")
    return value


def parse_skill_metadata(path: str) -> Skill:
    """Read the YAML frontmatter of a SKILL.md file; name and description are required."""
    text = _frontmatter(path)
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"failed to parse frontmatter: {exc}") from exc

    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ValueError("failed to parse frontmatter: not a mapping")

    skill = Skill(name=_field(document, "name"), description=_field(document, "description"))
    if not skill.name or not skill.description:
        raise ValueError("skill missing required fields")
    return skill


def format_for_prompt(skills: list[Skill]) -> str:
    """Render skills as an ``<available_skills>`` block, or an empty string if there are none."""
    if not skills:
        return ""
    parts = ["<available_skills>\n"]
    for s in skills:
        parts.append("  <skill>\n")
        parts.append(f"    <name>{s.name}</name>\n")
        parts.append(f"    <description>{s.description}</description>\n")
        parts.append(f"    <location>{s.location}/SKILL.md</location>\n")
        parts.append("  </skill>\n")
    parts.append("</available_skills>")
    return "".join(parts)