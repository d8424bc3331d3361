import sass

from assetflow.render import VendorPrefixer
from assetflow.tasks import StylesTask

from conftest import write


def test_each_entry_produces_expanded_and_minified_css(project) -> None:
    report = StylesTask(project.make_context()).run()

    assert report.ok
    css_dir = project.build / "css"
    assert sorted(path.name for path in css_dir.iterdir()) == [
        "main.css",
        "main.min.css",
        "print.css",
        "print.min.css",
    ]


def test_expanded_css_is_prefixed_and_minified_variant_derives_from_it(project) -> None:
    StylesTask(project.make_context()).run()

    expanded = (project.build / "css" / "main.css").read_text(encoding="utf-8")
    minified = (project.build / "css" / "main.min.css").read_text(encoding="utf-8")

    assert "$accent" not in expanded
    assert "-webkit-user-select: none;" in expanded
    assert expanded.index("-webkit-user-select") < expanded.index("  user-select")
    assert minified == sass.compile(string=expanded, output_style="compressed")
    assert "\n" not in minified.strip()
    assert "-webkit-user-select:none" in minified


def test_partials_are_not_entries(project) -> None:
    task = StylesTask(project.make_context())

    assert [path.name for path in task.inputs()] == ["main.scss", "print.scss"]


def test_compile_error_does_not_abort_siblings(project) -> None:
    broken = write(project.src / "scss" / "broken.scss", ".a {\n  color: $missing;\n}\n")

    report = StylesTask(project.make_context()).run()

    assert list(report.failures) == [str(broken.resolve())]
    assert (project.build / "css" / "main.css").exists()
    assert (project.build / "css" / "print.min.css").exists()
    assert not (project.build / "css" / "broken.css").exists()


def test_minify_can_be_disabled(project) -> None:
    config = project.config.model_copy(
        update={"styles": project.config.styles.model_copy(update={"minify": False})}
    )
    context = project.make_context()
    context.config = config

    StylesTask(context).run()

    assert (project.build / "css" / "main.css").exists()
    assert not (project.build / "css" / "main.min.css").exists()


def test_prefixer_is_idempotent() -> None:
    css = ".a {\n  user-select: none;\n  color: red;\n}\n"
    prefixer = VendorPrefixer()

    once = prefixer.process(css)
    twice = prefixer.process(once)

    assert once == (
        ".a {\n"
        "  -webkit-user-select: none;\n"
        "  -moz-user-select: none;\n"
        "  -ms-user-select: none;\n"
        "  user-select: none;\n"
        "  color: red;\n"
        "}\n"
    )
    assert twice == once


def test_prefixer_handles_values_and_existing_prefixes() -> None:
    css = ".nav {\n  position: sticky;\n}\n.b {\n  -webkit-backdrop-filter: blur(2px);\n  backdrop-filter: blur(2px);\n}\n"

    result = VendorPrefixer().process(css)

    assert "  position: -webkit-sticky;\n  position: sticky;" in result
    assert result.count("-webkit-backdrop-filter") == 1


def test_unwritable_output_is_isolated_to_its_entry(project) -> None:
    (project.build / "css" / "main.css").mkdir(parents=True)

    report = StylesTask(project.make_context()).run()

    assert list(report.failures) == [str(project.src / "scss" / "main.scss")]
    assert (project.build / "css" / "print.css").is_file()
    assert (project.build / "css" / "print.min.css").is_file()
