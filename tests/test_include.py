from pathlib import Path

import pytest

from assetflow.errors import IncludeError
from assetflow.render import IncludeResolver

from conftest import write


def test_include_is_inlined_with_indentation(tmp_path: Path) -> None:
    write(tmp_path / "partials" / "nav.html", "<nav>\n  <a>Home</a>\n</nav>\n")
    page = write(tmp_path / "index.html", "<body>\n    %%include(\"partials/nav.html\")\n</body>\n")

    rendered = IncludeResolver(tmp_path).render(page)

    assert rendered == "<body>\n    <nav>\n      <a>Home</a>\n    </nav>\n</body>\n"


def test_nested_includes_resolve_relative_to_including_file(tmp_path: Path) -> None:
    write(tmp_path / "partials" / "header.html", '<header>%%include("logo.html")</header>\n')
    write(tmp_path / "partials" / "logo.html", "<img src=\"logo.png\">\n")
    page = write(tmp_path / "index.html", '%%include("partials/header.html")\n')

    rendered = IncludeResolver(tmp_path).render(page)

    assert rendered == '<header><img src="logo.png"></header>\n'


def test_root_relative_reference_uses_html_root(tmp_path: Path) -> None:
    write(tmp_path / "partials" / "footer.html", "<footer/>")
    page = write(tmp_path / "blog" / "post" / "index.html", "%%include('/partials/footer.html')")

    assert IncludeResolver(tmp_path).render(page) == "<footer/>"


def test_context_values_fill_variables(tmp_path: Path) -> None:
    write(tmp_path / "partials" / "title.html", "<title>%%title | %%site.name</title> %%unknown")
    page = write(
        tmp_path / "index.html",
        '%%include("partials/title.html", {"title": "Home", "site": {"name": "Acme"}})',
    )

    rendered = IncludeResolver(tmp_path).render(page)

    assert rendered == "<title>Home | Acme</title> %%unknown"


def test_custom_prefix(tmp_path: Path) -> None:
    write(tmp_path / "part.html", "part")
    page = write(tmp_path / "index.html", '@@include("part.html") %%include("part.html")')

    rendered = IncludeResolver(tmp_path, prefix="@@").render(page)

    assert rendered == 'part %%include("part.html")'


def test_missing_include_reports_file_and_line(tmp_path: Path) -> None:
    page = write(tmp_path / "index.html", "<html>\n<body>\n  %%include(\"partials/missing.html\")\n")

    with pytest.raises(IncludeError) as exc:
        IncludeResolver(tmp_path).render(page)

    assert exc.value.path == page.resolve()
    assert exc.value.line == 3
    assert exc.value.reference == "partials/missing.html"
    assert f"{page.resolve()}:3" in str(exc.value)


def test_include_cycle_is_rejected(tmp_path: Path) -> None:
    write(tmp_path / "a.html", '%%include("b.html")')
    write(tmp_path / "b.html", '%%include("a.html")')

    with pytest.raises(IncludeError) as exc:
        IncludeResolver(tmp_path).render(tmp_path / "a.html")

    assert "cycle" in str(exc.value)


def test_invalid_context_json(tmp_path: Path) -> None:
    write(tmp_path / "part.html", "part")
    page = write(tmp_path / "index.html", "%%include(\"part.html\", {title: 'x'})")

    with pytest.raises(IncludeError) as exc:
        IncludeResolver(tmp_path).render(page)

    assert "JSON" in str(exc.value)


def test_variable_before_sentence_punctuation(tmp_path: Path) -> None:
    write(tmp_path / "partials" / "welcome.html", "Welcome to %%site. Visit %%links.home.")
    page = write(
        tmp_path / "index.html",
        '%%include("partials/welcome.html", {"site": "Acme", "links": {"home": "/"}})',
    )

    rendered = IncludeResolver(tmp_path).render(page)

    assert rendered == "Welcome to Acme. Visit /."
