"""Skills loader: static context snippets injected into the system prompt."""

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from nanoclaw.utils.helpers import get_skills_path


@dataclass
class Skill:
    name: str
    description: str
    content: str
    path: str


class SkillsLoader:
    """
    Loads skills from ``<skills_dir>/<name>/SKILL.md``.

    A skill file may start with a frontmatter block::

        ---
        name: git
        description: Working with git repositories
        ---

    The directory is re-scanned on every ``get_skills()`` call so edits show
    up on the next prompt build.
    """

    def __init__(self, skills_dir: Path | None = None):
        self.skills_dir = skills_dir or get_skills_path()

    def get_skills(self) -> list[Skill]:
        if not self.skills_dir.exists():
            return []

        skills = []
        for skill_dir in sorted(self.skills_dir.iterdir()):
            skill_file = skill_dir / "SKILL.md"
            if not skill_dir.is_dir() or not skill_file.exists():
                continue
            try:
                skills.append(self._load(skill_dir.name, skill_file))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping unreadable skill {skill_dir.name}: {e}")
        return skills

    def get_skill(self, name: str) -> Skill | None:
        for skill in self.get_skills():
            if skill.name == name:
                return skill
        return None

    def _load(self, dir_name: str, skill_file: Path) -> Skill:
        raw = skill_file.read_text(encoding="utf-8")
        meta, body = self._split_frontmatter(raw)
        return Skill(
            name=meta.get("name") or dir_name,
            description=meta.get("description") or self._first_line(body) or dir_name,
            content=body,
            path=str(skill_file),
        )

    @staticmethod
    def _split_frontmatter(raw: str) -> tuple[dict[str, str], str]:
        lines = raw.splitlines()
        if not lines or lines[0].strip() != "---":
            return {}, raw.strip()

        meta: dict[str, str] = {}
        for i, line in enumerate(lines[1:], start=1):
            if line.strip() == "---":
                return meta, "\n".join(lines[i + 1:]).strip()
            if ":" in line:
                key, value = line.split(":", 1)
                meta[key.strip()] = value.strip().strip("'\"")
        # Unterminated frontmatter: treat the whole file as body
        return {}, raw.strip()

    @staticmethod
    def _first_line(body: str) -> str:
        for line in body.splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                return line
        return ""
