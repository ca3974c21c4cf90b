"""
Tests for skill discovery.

Tests cover:
- Naming (root marker vs nested marker)
- VCS directory exclusion
- Frontmatter description parsing
- Duplicate names
"""

import logging
from pathlib import Path

from skir.core.scanner import read_skill_description, scan_for_skills


class TestReadDescription:
    """Tests for frontmatter description extraction."""

    def test_bare_value(self, tmp_path, write_skill):
        marker = write_skill(tmp_path / "pdf", "Work with PDF files")
        assert read_skill_description(marker) == "Work with PDF files"

    def test_double_quoted_value(self, tmp_path):
        marker = tmp_path / "SKILL.md"
        marker.write_text('---\ndescription: "Quoted: with colon"\n---\n\nBody\n')
        assert read_skill_description(marker) == "Quoted: with colon"

    def test_single_quoted_value(self, tmp_path):
        marker = tmp_path / "SKILL.md"
        marker.write_text("---\ndescription: 'Single quoted'\n---\n")
        assert read_skill_description(marker) == "Single quoted"

    def test_other_fields_ignored(self, tmp_path):
        marker = tmp_path / "SKILL.md"
        marker.write_text("---\nname: thing\nversion: 2\ndescription: Does things\n---\n")
        assert read_skill_description(marker) == "Does things"

    def test_no_frontmatter(self, tmp_path):
        marker = tmp_path / "SKILL.md"
        marker.write_text("# Just markdown\n\ndescription: not frontmatter\n")
        assert read_skill_description(marker) is None

    def test_frontmatter_without_description(self, tmp_path):
        marker = tmp_path / "SKILL.md"
        marker.write_text("---\nname: thing\n---\n")
        assert read_skill_description(marker) is None

    def test_empty_description(self, tmp_path):
        marker = tmp_path / "SKILL.md"
        marker.write_text('---\ndescription: ""\n---\n')
        assert read_skill_description(marker) is None

    def test_malformed_yaml(self, tmp_path):
        marker = tmp_path / "SKILL.md"
        marker.write_text("---\ndescription: [unclosed\n---\n")
        assert read_skill_description(marker) is None

    def test_missing_file(self, tmp_path):
        assert read_skill_description(tmp_path / "missing" / "SKILL.md") is None


class TestScanForSkills:
    """Tests for recursive marker discovery."""

    def test_empty_repo(self, tmp_path):
        assert scan_for_skills(tmp_path) == []

    def test_root_marker_named_after_root(self, tmp_path, write_skill):
        root = tmp_path / "my-skill"
        write_skill(root, "Root skill")

        skills = scan_for_skills(root)

        assert len(skills) == 1
        assert skills[0].name == "my-skill"
        assert skills[0].path == root / "SKILL.md"
        assert skills[0].description == "Root skill"

    def test_nested_marker_named_after_immediate_parent(self, tmp_path, write_skill):
        root = tmp_path / "repo"
        write_skill(root / "skills" / "category" / "pdf")

        skills = scan_for_skills(root)

        assert [s.name for s in skills] == ["pdf"]

    def test_multiple_skills(self, tmp_path, write_skill):
        root = tmp_path / "repo"
        write_skill(root / "skills" / "xlsx", "Spreadsheets")
        write_skill(root / "skills" / "docx", "Documents")
        (root / "README.md").write_text("# Repo\n")

        skills = scan_for_skills(root)

        assert {s.name for s in skills} == {"xlsx", "docx"}
        by_name = {s.name: s for s in skills}
        assert by_name["docx"].description == "Documents"

    def test_results_are_stable(self, tmp_path, write_skill):
        root = tmp_path / "repo"
        for name in ["zeta", "alpha", "mid"]:
            write_skill(root / name)

        assert [s.name for s in scan_for_skills(root)] == ["alpha", "mid", "zeta"]

    def test_vcs_directories_skipped(self, tmp_path, write_skill):
        root = tmp_path / "repo"
        write_skill(root / "real")
        write_skill(root / ".git" / "hooks")
        write_skill(root / ".hg" / "store")
        write_skill(root / ".svn" / "pristine")

        skills = scan_for_skills(root)

        assert [s.name for s in skills] == ["real"]

    def test_other_hidden_directories_scanned(self, tmp_path, write_skill):
        root = tmp_path / "repo"
        write_skill(root / ".claude" / "skills" / "hidden")

        assert [s.name for s in scan_for_skills(root)] == ["hidden"]

    def test_only_exact_marker_name(self, tmp_path):
        root = tmp_path / "repo"
        (root / "a").mkdir(parents=True)
        (root / "a" / "skill.md").write_text("lowercase\n")
        (root / "b").mkdir()
        (root / "b" / "SKILL.md.bak").write_text("backup\n")

        assert scan_for_skills(root) == []

    def test_marker_directory_is_not_a_skill(self, tmp_path):
        root = tmp_path / "repo"
        (root / "weird" / "SKILL.md").mkdir(parents=True)

        assert scan_for_skills(root) == []

    def test_duplicate_names_kept_and_warned(self, tmp_path, write_skill, caplog):
        root = tmp_path / "repo"
        write_skill(root / "a" / "pdf", "first")
        write_skill(root / "b" / "pdf", "second")

        with caplog.at_level(logging.WARNING, logger="skir.core.scanner"):
            skills = scan_for_skills(root)

        assert [s.name for s in skills] == ["pdf", "pdf"]
        assert {s.description for s in skills} == {"first", "second"}
        assert "Duplicate skill names" in caplog.text

    def test_paths_are_marker_files(self, tmp_path, write_skill):
        root = tmp_path / "repo"
        write_skill(root / "skills" / "pdf")

        (skill,) = scan_for_skills(root)

        assert skill.path.name == "SKILL.md"
        assert skill.path.parent == Path(root / "skills" / "pdf")

    def test_symlinked_skill_directory_followed(self, tmp_path, write_skill):
        shared = tmp_path / "shared" / "pdf"
        write_skill(shared, "PDF tools")
        root = tmp_path / "repo"
        (root / "skills").mkdir(parents=True)
        (root / "skills" / "pdf").symlink_to(shared, target_is_directory=True)

        (skill,) = scan_for_skills(root)

        assert skill.name == "pdf"
        assert skill.path == root / "skills" / "pdf" / "SKILL.md"
        assert skill.description == "PDF tools"

    def test_symlink_cycle_terminates(self, tmp_path, write_skill):
        root = tmp_path / "repo"
        write_skill(root / "skills" / "pdf")
        (root / "skills" / "loop").symlink_to(root, target_is_directory=True)

        assert [s.name for s in scan_for_skills(root)] == ["pdf"]
