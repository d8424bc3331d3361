from assetflow.render import JsMinifier
from assetflow.tasks import ScriptBundleTask, ScriptsTask

from conftest import FakeTranspiler, write


def test_bundle_preserves_layout_then_main_order(project) -> None:
    report = ScriptBundleTask(project.make_context()).run()

    assert report.ok
    combined = (project.build / "js" / "combined.js").read_text(encoding="utf-8")
    assert combined == "const a=1;\nconst b=2;"
    assert combined.index("const a=1;") < combined.index("const b=2;")


def test_minified_bundle_is_transpiled_concatenation(project) -> None:
    transpiler = FakeTranspiler()
    context = project.make_context(transpiler=transpiler, js_minifier=JsMinifier())

    ScriptBundleTask(context).run()

    assert transpiler.calls == ["combined.js"]
    minified = (project.build / "js" / "combined.min.js").read_text(encoding="utf-8")
    assert minified == "const a=1;const b=2;"


def test_bundle_with_missing_member_writes_nothing(project) -> None:
    (project.src / "js" / "main.js").unlink()

    report = ScriptBundleTask(project.make_context()).run()

    assert list(report.failures) == [str(project.config.source_root / "js" / "main.js")]
    assert not (project.build / "js" / "combined.js").exists()
    assert not (project.build / "js" / "combined.min.js").exists()


def test_standalone_scripts_exclude_bundle_members(project) -> None:
    report = ScriptsTask(project.make_context()).run()

    assert report.ok
    js_dir = project.build / "js"
    produced = sorted(path.relative_to(js_dir).as_posix() for path in js_dir.rglob("*.js"))
    assert produced == ["app.js", "widgets/slider.js"]


def test_each_script_is_transpiled_then_minified(project) -> None:
    transpiler = FakeTranspiler()
    context = project.make_context(transpiler=transpiler, js_minifier=JsMinifier())

    ScriptsTask(context).run()

    assert transpiler.calls == ["app.js", "widgets/slider.js"]
    assert (project.build / "js" / "app.js").read_text(encoding="utf-8") == "const app=1;console.log(app);"


def test_script_error_is_isolated(project) -> None:
    broken = write(project.src / "js" / "broken.js", "SYNTAX ERROR (")

    report = ScriptsTask(project.make_context()).run()

    assert list(report.failures) == [str(broken.resolve())]
    assert "unexpected token" in report.failures[str(broken.resolve())]
    assert not (project.build / "js" / "broken.js").exists()
    assert (project.build / "js" / "app.js").exists()
    assert (project.build / "js" / "widgets" / "slider.js").exists()


def test_bundle_transpile_error_keeps_raw_bundle(project) -> None:
    write(project.src / "js" / "main.js", "SYNTAX ERROR")

    report = ScriptBundleTask(project.make_context()).run()

    assert not report.ok
    assert (project.build / "js" / "combined.js").exists()
    assert not (project.build / "js" / "combined.min.js").exists()


def test_unwritable_script_output_is_isolated(project) -> None:
    (project.build / "js" / "app.js").mkdir(parents=True)

    report = ScriptsTask(project.make_context()).run()

    assert list(report.failures) == [str(project.src / "js" / "app.js")]
    assert (project.build / "js" / "widgets" / "slider.js").is_file()


def test_unwritable_bundle_is_recorded(project) -> None:
    bundle = project.build / "js" / "combined.js"
    bundle.mkdir(parents=True)

    report = ScriptBundleTask(project.make_context()).run()

    assert list(report.failures) == [str(bundle.resolve())]
    assert not (project.build / "js" / "combined.min.js").exists()
