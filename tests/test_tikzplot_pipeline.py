from __future__ import annotations

import errno
import os
from pathlib import Path
import subprocess
import tempfile
import unittest
from unittest import mock

from tikzplot import (
    CleanupFailedError,
    CompilerFailedError,
    ExternalToolError,
    FigureReleasedError,
    OutputMode,
    PipelineConfig,
    PipelineConfigError,
    PlotResourceError,
    new_figure,
    save_figure,
    select_mode,
)
from tikzplot.compile.pipeline import intermediate_paths
from tikzplot.config import TIMEOUT_ENV_VAR
from tikzplot.render import render_markup


def _demo_figure(target: Path):
    return (
        new_figure(target)
        .set_x_range(0, 1)
        .add_line_series([0, 1], [0, 1], "teal", "line")
        .add_stem_series([0, 1], [1, 0.5], "red")
    )


class _FakeCompiler:
    """Stands in for pdflatex: records the source and writes the artifacts it would."""

    def __init__(self, returncode: int = 0, output: str = "") -> None:
        self.returncode = returncode
        self.output = output
        self.calls: list[tuple[list[str], Path]] = []
        self.source_text = ""

    def __call__(self, command, *, cwd, **kwargs):
        cwd_path = Path(cwd)
        self.calls.append((list(command), cwd_path))
        source = cwd_path / command[-1]
        self.source_text = source.read_text(encoding="utf-8")
        stem = source.stem
        (cwd_path / f"{stem}.aux").write_text("aux", encoding="utf-8")
        (cwd_path / f"{stem}.log").write_text("log", encoding="utf-8")
        if self.returncode == 0:
            (cwd_path / f"{stem}.pdf").write_bytes(b"%PDF-1.5\n")
        return subprocess.CompletedProcess(command, self.returncode, stdout=self.output)


class _ShortWriteFile:
    """Real file handle whose write stops part way with a disk-full error."""

    def __init__(self, handle) -> None:
        self._handle = handle

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self._handle.close()

    def write(self, text: str) -> int:
        self._handle.write(text[:10])
        raise OSError(errno.ENOSPC, "No space left on device")


class ModeSelectionTests(unittest.TestCase):
    def test_compiled_suffixes_are_exact_and_case_sensitive(self) -> None:
        self.assertEqual(select_mode("fig.pdf"), OutputMode.COMPILED)
        self.assertEqual(select_mode("fig.dvi"), OutputMode.COMPILED)
        self.assertEqual(select_mode(Path("dir/fig.pdf")), OutputMode.COMPILED)
        for target in ("fig", "fig.PDF", "fig.tex", "fig.tikz", "fig.ps", "fig.pdf.txt", "pdf", ".pdf", "dir/.dvi"):
            self.assertEqual(select_mode(target), OutputMode.RAW, target)

    def test_intermediate_paths_replace_suffix(self) -> None:
        source, aux = intermediate_paths("plots/fig.pdf", PipelineConfig())
        self.assertEqual(source, Path("plots/fig.tex"))
        self.assertEqual(aux, (Path("plots/fig.aux"), Path("plots/fig.log")))


class RawModeTests(unittest.TestCase):
    def test_raw_mode_writes_exactly_one_file_with_bare_markup(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "fig.tikz"
            fig = _demo_figure(target)
            expected = render_markup(fig)
            with mock.patch("tikzplot.compile.pipeline.subprocess.run") as run:
                result = fig.save(PipelineConfig())
            run.assert_not_called()
            self.assertEqual(result.mode, OutputMode.RAW)
            self.assertEqual(result.output, target)
            self.assertEqual([p.name for p in Path(tmp).iterdir()], ["fig.tikz"])
            text = target.read_text(encoding="utf-8")
            self.assertEqual(text, expected)
            self.assertNotIn("\\documentclass", text)
            self.assertNotIn("\\end{document}", text)

    def test_raw_mode_without_suffix(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "figure"
            result = new_figure(target).save(PipelineConfig())
            self.assertEqual(result.mode, OutputMode.RAW)
            self.assertTrue(target.read_text(encoding="utf-8").startswith("\\begin{tikzpicture}"))

    def test_unwritable_target_is_resource_error_and_releases_figure(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "missing" / "fig.tikz"
            fig = _demo_figure(target)
            with self.assertRaises(PlotResourceError) as ctx:
                fig.save(PipelineConfig())
            self.assertEqual(ctx.exception.path, target)
            self.assertFalse(target.exists())
            self.assertTrue(fig.released)
            with self.assertRaises(FigureReleasedError):
                fig.save(PipelineConfig())

    def test_save_twice_is_rejected(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            fig = new_figure(Path(tmp) / "fig.tikz")
            fig.save(PipelineConfig())
            with self.assertRaises(FigureReleasedError):
                fig.save(PipelineConfig())

    def test_failed_open_leaves_existing_target_untouched(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "keep.tikz"
            target.write_text("user data", encoding="utf-8")
            fig = _demo_figure(target)
            with mock.patch.object(Path, "open", side_effect=PermissionError("denied")):
                with self.assertRaises(PlotResourceError):
                    fig.save(PipelineConfig())
            self.assertEqual(target.read_text(encoding="utf-8"), "user data")
            self.assertTrue(fig.released)

    def test_failed_write_removes_partial_file(self) -> None:
        real_open = Path.open

        def short_open(path, *args, **kwargs):
            return _ShortWriteFile(real_open(path, *args, **kwargs))

        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "fig.tikz"
            fig = _demo_figure(target)
            with mock.patch.object(Path, "open", autospec=True, side_effect=short_open):
                with self.assertRaises(PlotResourceError) as ctx:
                    fig.save(PipelineConfig())
            self.assertEqual(ctx.exception.path, target)
            self.assertFalse(target.exists())

    def test_raw_save_ignores_broken_environment_config(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "fig.tikz"
            with mock.patch.dict(os.environ, {TIMEOUT_ENV_VAR: "abc"}):
                result = _demo_figure(target).save()
            self.assertEqual(result.mode, OutputMode.RAW)
            self.assertTrue(target.exists())

    def test_released_figure_is_rejected_before_writing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            target = Path(tmp) / "fig.tikz"
            fig = _demo_figure(target)
            fig.close()
            with self.assertRaises(FigureReleasedError):
                save_figure(fig, PipelineConfig())
            self.assertFalse(target.exists())
            with self.assertRaises(FigureReleasedError):
                render_markup(fig)


class CompiledModeTests(unittest.TestCase):
    def test_compiled_mode_runs_compiler_and_removes_intermediates(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            target = root / "fig.pdf"
            fig = _demo_figure(target)
            body = render_markup(fig)
            fake = _FakeCompiler()
            with mock.patch("tikzplot.compile.pipeline.subprocess.run", side_effect=fake) as run:
                result = fig.save(PipelineConfig())

            self.assertEqual(run.call_count, 1)
            command, cwd = fake.calls[0]
            self.assertEqual(command, ["pdflatex", "fig.tex"])
            self.assertEqual(cwd, root)
            self.assertEqual(run.call_args.kwargs["stdin"], subprocess.DEVNULL)
            self.assertIsNone(run.call_args.kwargs["timeout"])

            self.assertTrue(fake.source_text.startswith("\\documentclass{standalone}\n"))
            self.assertIn("\\pgfplotsset{compat=1.18}\n", fake.source_text)
            self.assertIn(body, fake.source_text)
            self.assertTrue(fake.source_text.endswith("\\end{document}\n"))

            self.assertEqual(result.mode, OutputMode.COMPILED)
            self.assertEqual(result.output, target)
            self.assertEqual(result.intermediate, root / "fig.tex")
            self.assertEqual(set(result.removed), {root / "fig.tex", root / "fig.aux", root / "fig.log"})
            self.assertEqual(sorted(p.name for p in root.iterdir()), ["fig.pdf"])
            self.assertTrue(fig.released)

    def test_dvi_target_uses_its_own_compiler(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            fake = _FakeCompiler()
            with mock.patch("tikzplot.compile.pipeline.subprocess.run", side_effect=fake):
                new_figure(Path(tmp) / "fig.dvi").save(PipelineConfig())
            self.assertEqual(fake.calls[0][0], ["latex", "fig.tex"])

    def test_figure_is_released_before_compiler_runs(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            fig = _demo_figure(Path(tmp) / "fig.pdf")
            seen: list[bool] = []
            fake = _FakeCompiler()

            def run(command, **kwargs):
                seen.append(fig.released)
                return fake(command, **kwargs)

            with mock.patch("tikzplot.compile.pipeline.subprocess.run", side_effect=run):
                fig.save(PipelineConfig())
            self.assertEqual(seen, [True])

    def test_compiler_failure_is_reported_and_keeps_intermediates(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            fig = _demo_figure(root / "fig.pdf")
            fake = _FakeCompiler(returncode=1, output="! Undefined control sequence.\n")
            with mock.patch("tikzplot.compile.pipeline.subprocess.run", side_effect=fake):
                with self.assertRaises(CompilerFailedError) as ctx:
                    fig.save(PipelineConfig())
            err = ctx.exception
            self.assertEqual(err.step, "compile")
            self.assertEqual(err.returncode, 1)
            self.assertEqual(err.command, ("pdflatex", "fig.tex"))
            self.assertIn("Undefined control sequence", err.output)
            self.assertIsInstance(err, ExternalToolError)
            self.assertTrue((root / "fig.tex").exists())
            self.assertFalse((root / "fig.pdf").exists())
            self.assertTrue(fig.released)

    def test_missing_compiler_is_compiler_failure(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            fig = new_figure(Path(tmp) / "fig.pdf")
            with mock.patch(
                "tikzplot.compile.pipeline.subprocess.run",
                side_effect=FileNotFoundError("pdflatex"),
            ):
                with self.assertRaises(CompilerFailedError):
                    fig.save(PipelineConfig())

    def test_compiler_timeout_is_compiler_failure(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            fig = new_figure(Path(tmp) / "fig.pdf")
            with mock.patch(
                "tikzplot.compile.pipeline.subprocess.run",
                side_effect=subprocess.TimeoutExpired(["pdflatex", "fig.tex"], 5.0),
            ) as run:
                with self.assertRaises(CompilerFailedError):
                    fig.save(PipelineConfig(timeout_s=5.0))
            self.assertEqual(run.call_args.kwargs["timeout"], 5.0)

    def test_cleanup_failure_is_distinct_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            fig = new_figure(Path(tmp) / "fig.pdf")
            fake = _FakeCompiler()
            with mock.patch("tikzplot.compile.pipeline.subprocess.run", side_effect=fake):
                with mock.patch.object(Path, "unlink", side_effect=PermissionError("denied")):
                    with self.assertRaises(CleanupFailedError) as ctx:
                        fig.save(PipelineConfig())
            self.assertEqual(ctx.exception.step, "cleanup")
            self.assertNotIsInstance(ctx.exception, CompilerFailedError)
            self.assertTrue(fig.released)

    def test_unwritable_intermediate_is_resource_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            fig = new_figure(Path(tmp) / "missing" / "fig.pdf")
            with mock.patch("tikzplot.compile.pipeline.subprocess.run") as run:
                with self.assertRaises(PlotResourceError):
                    fig.save(PipelineConfig())
            run.assert_not_called()
            self.assertTrue(fig.released)

    def test_broken_environment_config_fails_before_compiling(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            fig = _demo_figure(root / "fig.pdf")
            with mock.patch.dict(os.environ, {TIMEOUT_ENV_VAR: "abc"}):
                with mock.patch("tikzplot.compile.pipeline.subprocess.run") as run:
                    with self.assertRaises(PipelineConfigError):
                        fig.save()
            run.assert_not_called()
            self.assertEqual(list(root.iterdir()), [])
            self.assertTrue(fig.released)

    def test_released_figure_is_rejected_before_compiling(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            fig = _demo_figure(root / "fig.pdf")
            fig.close()
            with mock.patch("tikzplot.compile.pipeline.subprocess.run") as run:
                with self.assertRaises(FigureReleasedError):
                    save_figure(fig, PipelineConfig())
            run.assert_not_called()
            self.assertEqual(list(root.iterdir()), [])

    def test_configured_compiler_command_is_used(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = PipelineConfig(
                compilers={".pdf": ("lualatex", "-interaction=nonstopmode"), ".dvi": ("latex",)},
                compat="1.17",
            )
            fake = _FakeCompiler()
            with mock.patch("tikzplot.compile.pipeline.subprocess.run", side_effect=fake):
                new_figure(Path(tmp) / "fig.pdf").save(config)
            self.assertEqual(fake.calls[0][0], ["lualatex", "-interaction=nonstopmode", "fig.tex"])
            self.assertIn("\\pgfplotsset{compat=1.17}\n", fake.source_text)


if __name__ == "__main__":
    unittest.main()
