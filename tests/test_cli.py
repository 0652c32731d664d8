from datetime import date
from pathlib import Path

from click.testing import CliRunner

from bootblog import __version__
from bootblog.cli import _post_template, cli, play_boot_sequence
from bootblog.frontmatter import parse_front_matter

SKIP_GIT = {"BOOTBLOG_SKIP_GIT_INIT": "1"}


def scaffold(runner: CliRunner, tmp_path: Path) -> Path:
    project = tmp_path / "myblog"
    result = runner.invoke(cli, ["new", str(project)], env=SKIP_GIT)
    assert result.exit_code == 0, result.output
    return project


class FakeQuestion:
    def __init__(self, answer):
        self.answer = answer

    def ask(self):
        return self.answer


def fake_prompts(monkeypatch, texts, confirm=False):
    answers = iter(texts)
    monkeypatch.setattr(
        "bootblog.cli.questionary.text", lambda *a, **k: FakeQuestion(next(answers))
    )
    monkeypatch.setattr(
        "bootblog.cli.questionary.confirm", lambda *a, **k: FakeQuestion(confirm)
    )


def test_cli_version():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_cli_new_scaffolds_project(tmp_path):
    runner = CliRunner()
    project = scaffold(runner, tmp_path)
    assert (project / "bootblog.yaml").exists()
    assert (project / "content" / "posts" / "hello-world.md").exists()
    assert (project / "templates" / "base.html.jinja").exists()
    assert (project / "templates" / "post.html.jinja").exists()
    assert (project / "templates" / "blog.html.jinja").exists()

    # fails on non-empty directory
    result = runner.invoke(cli, ["new", str(project)], env=SKIP_GIT)
    assert result.exit_code != 0
    assert "non-empty" in result.output


def test_cli_build_scaffolded_project(monkeypatch, tmp_path):
    runner = CliRunner()
    project = scaffold(runner, tmp_path)
    monkeypatch.chdir(project)

    result = runner.invoke(cli, ["build"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "Built 1 posts, 4 pages" in result.output
    assert (project / "output" / "index.html").exists()
    assert (project / "output" / "blog" / "hello-world" / "index.html").exists()
    assert (project / "output" / "blog" / "tags" / "meta" / "index.html").exists()


def test_cli_build_output_and_drafts(monkeypatch, tmp_path):
    runner = CliRunner()
    project = scaffold(runner, tmp_path)
    (project / "content" / "posts" / "_wip.md").write_text(
        "---\ntitle: WIP\ndate: 2026-02-01\n---\nSoon.\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)

    result = runner.invoke(cli, ["build", "--drafts", "--output", "public"])

    assert result.exit_code == 0, result.output
    assert "Built 2 posts" in result.output
    assert (project / "public" / "blog" / "wip" / "index.html").exists()


def test_cli_build_reports_malformed_post(monkeypatch, tmp_path):
    runner = CliRunner()
    project = scaffold(runner, tmp_path)
    (project / "content" / "posts" / "broken.md").write_text(
        "---\ntitle: Broken\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)

    result = runner.invoke(cli, ["build"])

    assert result.exit_code == 1
    assert "Build failed" in result.output
    assert "broken.md" in result.output
    assert "never closed" in result.output


def test_cli_build_reports_duplicate_slugs(monkeypatch, tmp_path):
    runner = CliRunner()
    project = scaffold(runner, tmp_path)
    (project / "content" / "posts" / "2025-05-05-hello-world.md").write_text(
        "---\ntitle: Again\ndate: 2025-05-05\n---\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)

    result = runner.invoke(cli, ["build"])

    assert result.exit_code == 1
    assert "Duplicate slugs: hello-world" in result.output
    assert "2025-05-05-hello-world.md" in result.output
    assert "content/posts/hello-world.md" in result.output.replace("\\", "/")


def test_cli_build_reports_skipped_posts(monkeypatch, tmp_path):
    runner = CliRunner()
    project = scaffold(runner, tmp_path)
    config = project / "bootblog.yaml"
    config.write_text(
        config.read_text(encoding="utf-8").replace("on_error: fail", "on_error: skip"),
        encoding="utf-8",
    )
    (project / "content" / "posts" / "broken.md").write_text(
        "---\ntitle: Broken\n---\n", encoding="utf-8"
    )
    monkeypatch.chdir(project)

    result = runner.invoke(cli, ["build"])

    assert result.exit_code == 0, result.output
    assert "Skipped" in result.output
    assert "broken.md" in result.output
    assert "Built 1 posts" in result.output


def test_cli_build_reports_bad_config(monkeypatch, tmp_path):
    (tmp_path / "bootblog.yaml").write_text("site: [unclosed\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli, ["build"])

    assert result.exit_code == 1
    assert "bootblog.yaml" in result.output
    assert "Invalid YAML" in result.output


def test_cli_build_without_content_dir(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 1
    assert "Expected content directory" in result.output


def test_cli_post_creates_file(monkeypatch, tmp_path):
    runner = CliRunner()
    project = scaffold(runner, tmp_path)
    monkeypatch.chdir(project)
    fake_prompts(monkeypatch, ["  Taming the OOM Killer ", "linux, memory", "Notes."], True)

    result = runner.invoke(cli, ["post"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    created = project / "content" / "posts" / "taming-the-oom-killer.md"
    assert created.exists()
    meta, body = parse_front_matter(created.read_text(encoding="utf-8"), created)
    assert meta.title == "Taming the OOM Killer"
    assert meta.date == date.today()
    assert meta.tags == frozenset({"linux", "memory"})
    assert meta.excerpt == "Notes."
    assert meta.featured is True
    assert body.strip()


def test_cli_post_rejects_existing_slug(monkeypatch, tmp_path):
    runner = CliRunner()
    project = scaffold(runner, tmp_path)
    monkeypatch.chdir(project)
    fake_prompts(monkeypatch, ["Hello World", "", ""])

    result = runner.invoke(cli, ["post"])

    assert result.exit_code != 0
    assert "already exists" in result.output
    assert "hello-world.md" in result.output


def test_cli_post_aborts_on_cancel(monkeypatch, tmp_path):
    runner = CliRunner()
    project = scaffold(runner, tmp_path)
    monkeypatch.chdir(project)
    fake_prompts(monkeypatch, [None])

    result = runner.invoke(cli, ["post"])

    assert result.exit_code != 0
    assert len(list((project / "content" / "posts").iterdir())) == 1


def test_cli_post_requires_project(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["post"])
    assert result.exit_code != 0
    assert "bootblog.yaml" in result.output


def test_post_template_round_trips():
    text = _post_template("Quotes: \"and\" colons", date(2026, 3, 4), "a, , b", "", False)
    meta, _ = parse_front_matter(text)
    assert meta.title == 'Quotes: "and" colons'
    assert meta.date == date(2026, 3, 4)
    assert meta.tags == frozenset({"a", "b"})
    assert meta.featured is False


def test_cli_boot_fast(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["boot", "--fast"])
    assert result.exit_code == 0, result.output
    assert "> Found 0x55aa..." in result.output
    assert "> Boot complete!" in result.output
    assert "[kernel] Initializing system hardware..." in result.output
    assert result.output.index("Found 0x55aa") < result.output.index("Boot complete!")


def test_cli_boot_rejects_bad_settings(monkeypatch, tmp_path):
    (tmp_path / "bootblog.yaml").write_text(
        "boot:\n  min_delay: 2\n  max_delay: 1\n", encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["boot"])
    assert result.exit_code != 0
    assert "Invalid boot settings" in result.output


def test_play_boot_sequence_echoes_lines(capsys):
    import asyncio

    from bootblog.boot import BootScript

    script = BootScript(
        lines=("alpha", "omega"), logs=(), min_delay=0, max_delay=0, final_delay=0
    )
    asyncio.run(play_boot_sequence(script))
    out = capsys.readouterr().out
    assert "> alpha" in out
    assert "> omega" in out


def test_module_main_entrypoint():
    from bootblog.__main__ import main

    assert callable(main)


def test_main_invokes_cli(monkeypatch):
    import bootblog.cli as cli_mod

    called = {}
    monkeypatch.setattr(cli_mod, "cli", lambda: called.setdefault("ran", True))
    cli_mod.main()
    assert called == {"ran": True}
