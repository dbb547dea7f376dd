# =============================================================================
# test_cli.py - Command-Line Interface Tests
# =============================================================================
# Tests for the palx command: file name defaults, output files, options
# and exit codes.
# =============================================================================

from pathlib import Path

from click.testing import CliRunner

from palx import __version__
from palx.cli.errors import ExitCode
from palx.cli.palx import default_file, main


HELLO = (
    "        .ORG    0200\n"
    "START:  CLA CLL\n"
    "        TAD     [5]\n"
    "        JMP     START\n"
)


# =============================================================================
# File Name Defaults
# =============================================================================

class TestDefaultFile:
    """Tests for default_file()."""

    def test_adds_suffix(self):
        assert default_file("prog", None, ".plx") == Path("prog.plx")

    def test_keeps_extension(self):
        assert default_file("prog.pal", None, ".plx") == Path("prog.pal")

    def test_from_related_file(self):
        """No name at all takes directory and base name from the source."""
        assert default_file(None, Path("/src/prog.plx"), ".lst") == Path("/src/prog.lst")

    def test_name_without_directory(self):
        assert default_file("rom", Path("/src/prog.plx"), ".bin") == Path("/src/rom.bin")

    def test_directory_only(self):
        assert default_file("out/", Path("/src/prog.plx"), ".lst") == Path("out/prog.lst")

    def test_complete_name_unchanged(self):
        assert default_file("/tmp/x.rom", Path("/src/prog.plx"), ".bin") == Path("/tmp/x.rom")


# =============================================================================
# Assembly Runs
# =============================================================================

class TestPalxCommand:
    """Integration tests that run the palx command."""

    def test_assemble(self):
        """Should write the listing and binary next to the source."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.plx").write_text(HELLO)

            result = runner.invoke(main, ["hello.plx"])

            assert result.exit_code == ExitCode.SUCCESS, f"Assembly failed: {result.output}"
            assert Path("hello.lst").exists()
            assert "START:  CLA CLL" in Path("hello.lst").read_text()
            assert Path("hello.bin").stat().st_size > 64

    def test_source_extension_added(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.plx").write_text(HELLO)

            result = runner.invoke(main, ["hello"])

            assert result.exit_code == ExitCode.SUCCESS
            assert Path("hello.bin").exists()

    def test_output_names(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.plx").write_text(HELLO)

            result = runner.invoke(main, ["hello.plx", "-l", "out", "-b", "rom.img"])

            assert result.exit_code == ExitCode.SUCCESS
            assert Path("out.lst").exists()
            assert Path("rom.img").exists()
            assert not Path("hello.lst").exists()

    def test_page_options(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("hello.plx").write_text("        NOP\n" * 30)

            result = runner.invoke(main, ["-w", "80", "-p", "12", "hello.plx"])

            assert result.exit_code == ExitCode.SUCCESS
            assert "\f" in Path("hello.lst").read_text(encoding="latin-1")

    def test_flagged_lines(self):
        """Flagged lines are repeated and the exit status is 1."""
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("bad.plx").write_text("        NOP\n        .ERROR\n")

            result = runner.invoke(main, ["bad.plx"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "   2E" in result.output
            assert Path("bad.lst").exists()
            assert Path("bad.bin").exists()

    def test_fatal_error(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            Path("bad.plx").write_text("        .IFEQ   0 <\n        NOP\n")

            result = runner.invoke(main, ["bad.plx"])

            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "Assembly error:" in result.output

    def test_missing_source(self):
        runner = CliRunner()
        with runner.isolated_filesystem():
            result = runner.invoke(main, ["nothere"])

            assert result.exit_code == ExitCode.INVALID_ARGS
            assert "unable to read nothere.plx" in result.output

    def test_version(self):
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
