from pathlib import Path
from types import SimpleNamespace
import json
import textwrap

import pytest
from typer.testing import CliRunner

from assetflow.config import ProjectConfig
from assetflow.context import BuildContext


class FakeTranspiler:
    """Identity transpiler that records calls and rejects marked sources."""

    def __init__(self) -> None:
        self.calls = []

    def transpile(self, source: str, *, filename: str = "<script>") -> str:
        self.calls.append(filename)
        if "SYNTAX ERROR" in source:
            raise ValueError(f"{filename}: unexpected token")
        return source


class FakeMinifier:
    def minify(self, source: str) -> str:
        return "".join(line.strip() for line in source.splitlines())


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls = []

    def reload(self, paths=()) -> None:
        self.calls.append(list(paths))


def write(path: Path, content: str | bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


def _populate_sources(root: Path) -> None:
    src = root / "src"
    write(
        src / "html" / "index.html",
        textwrap.dedent(
            """\
            <html>
              <body>
                %%include("partials/header.html")
                <main>Home</main>
              </body>
            </html>
            """
        ),
    )
    write(src / "html" / "partials" / "header.html", "<header>\n  <h1>Site</h1>\n</header>\n")
    write(src / "html" / "about" / "index.html", '<p>About</p>\n%%include("/partials/header.html")\n')
    write(src / "html" / "about" / "partials" / "team.html", "<p>Team</p>\n")

    write(src / "scss" / "_vars.scss", "$accent: #ff0000;\n")
    write(src / "scss" / "main.scss", '@import "vars";\n.button {\n  color: $accent;\n  user-select: none;\n}\n')
    write(src / "scss" / "print.scss", "body {\n  margin: 0;\n}\n")

    write(src / "js" / "layout.js", "const a=1;")
    write(src / "js" / "main.js", "const b=2;")
    write(src / "js" / "app.js", "const app = 1;\nconsole.log(app);\n")
    write(src / "js" / "widgets" / "slider.js", "const slider = 2;\n")

    write(src / "images" / "logo.png", b"\x89PNG fake")
    write(src / "images" / "icons" / "arrow.SVG", "<svg/>")
    write(src / "images" / "notes.txt", "not an image")

    modules = root / "node_modules"
    write(root / "package.json", json.dumps({"dependencies": {"bootstrap": "^5", "lodash": "^4", "chart.js": "^4"}}))
    write(modules / "bootstrap" / "dist" / "css" / "bootstrap.css", ".btn{}")
    write(modules / "bootstrap" / "dist" / "js" / "bootstrap.js", "/* bs */")
    write(modules / "bootstrap" / "scss" / "_buttons.scss", ".btn{}")
    write(modules / "bootstrap-icons" / "font" / "bootstrap-icons.css", ".bi{}")
    write(modules / "bootstrap-icons" / "icons" / "alarm.svg", "<svg/>")
    write(modules / "lodash" / "lodash.js", "/* lodash */")
    write(modules / "lodash" / "README.md", "# lodash")
    write(modules / "lodash" / "package.json", "{}")
    write(modules / "chart.js" / "dist" / "chart.umd.js", "/* chart */")
    write(modules / "chart.js" / "dist" / "chart.umd.js.map", "{}")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path) -> SimpleNamespace:
    """
    A sample source tree with vendor packages and a resolved config.
    """
    _populate_sources(tmp_path)
    config = ProjectConfig().resolved(tmp_path)

    def make_context(**overrides) -> BuildContext:
        overrides.setdefault("transpiler", FakeTranspiler())
        overrides.setdefault("js_minifier", FakeMinifier())
        return BuildContext.from_config(config, **overrides)

    return SimpleNamespace(
        root=tmp_path,
        src=tmp_path / "src",
        build=tmp_path / "build",
        config=config,
        make_context=make_context,
    )


@pytest.fixture
def config_file(project: SimpleNamespace) -> Path:
    """assetflow.toml for CLI runs; transpilation off so no JS engine is needed."""
    path = project.root / "assetflow.toml"
    path.write_text(
        textwrap.dedent(
            """
            source_root = "src"
            build_root = "build"

            [scripts]
            transpile = false

            [server]
            open_browser = false
            """
        ).strip()
        + "\n",
        encoding="utf-8",
    )
    return path
