from __future__ import annotations

from pathlib import Path
import io
import tarfile
import tempfile
import textwrap
import unittest
from unittest.mock import patch

from core.command_runner import RecordingCommandRunner
from rpmpack.builder import (
    DEFAULT_BUILD_NAME_FMT,
    RPMBUILD_SUBDIRS,
    BuildContext,
    Builder,
    create_rpmbuild_tree,
    render_spec_template,
    resolve_output_path,
    split_output_path,
)
from rpmpack.config import CargoOptions, PackageConfig, RpmMetadata, load_package_config
from rpmpack.console import Console
from rpmpack.errors import ExternalCommandError, MissingMetadataError, TemplateNotFoundError, ToolNotFoundError


def _fake_which(name: str) -> str | None:
    return f"/usr/bin/{name}"


class BuildContextTests(unittest.TestCase):
    def test_default_profile_without_target(self) -> None:
        config = PackageConfig(name="foo", version="1.2.3", rpm=RpmMetadata())
        context = BuildContext.create(config, rpm_config_dir=Path("/src/foo/.rpm"), base_target_dir=Path("/t"))
        self.assertEqual(context.target_dir, Path("/t/release"))
        self.assertEqual(context.rpmbuild_dir, Path("/t/release/rpmbuild"))
        self.assertEqual(context.project_root, Path("/src/foo"))

    def test_target_and_profile_from_metadata(self) -> None:
        config = PackageConfig(
            name="foo",
            version="1.2.3",
            rpm=RpmMetadata(cargo=CargoOptions(profile="debug", target="x86_64-unknown-linux-musl")),
        )
        context = BuildContext.create(config, rpm_config_dir=Path("/src/.rpm"), base_target_dir=Path("/t"))
        self.assertEqual(context.rpmbuild_dir, Path("/t/x86_64-unknown-linux-musl/debug/rpmbuild"))

    def test_missing_metadata_is_configuration_error(self) -> None:
        config = PackageConfig(name="foo", version="1.2.3")
        with self.assertRaises(MissingMetadataError) as ctx:
            BuildContext.create(config, rpm_config_dir=Path("/src/.rpm"), base_target_dir=Path("/t"))
        self.assertIn("rpmpack init", ctx.exception.hint)


class SpecRenderingTests(unittest.TestCase):
    def test_all_placeholders_replaced(self) -> None:
        template = "Version: @@VERSION@@\nRelease: @@RELEASE@@\n# @@VERSION@@-@@RELEASE@@ @@VERSION@@\n"
        rendered = render_spec_template(template, "1.2.3", "7")
        self.assertNotIn("@@VERSION@@", rendered)
        self.assertNotIn("@@RELEASE@@", rendered)
        self.assertEqual(rendered, "Version: 1.2.3\nRelease: 7\n# 1.2.3-7 1.2.3\n")

    def test_substituted_value_counts_match_placeholders(self) -> None:
        for versions, releases in [(0, 0), (1, 0), (0, 3), (4, 2)]:
            template = "A" + "<@@VERSION@@>" * versions + "B" + "[@@RELEASE@@]" * releases + "C"
            rendered = render_spec_template(template, "9.9", "rel")
            self.assertEqual(rendered.count("<9.9>"), versions)
            self.assertEqual(rendered.count("[rel]"), releases)
            self.assertEqual(rendered, "A" + "<9.9>" * versions + "B" + "[rel]" * releases + "C")

    def test_version_substitution_happens_first(self) -> None:
        rendered = render_spec_template("@@VERSION@@", "@@RELEASE@@", "2")
        self.assertEqual(rendered, "2")


class OutputPathTests(unittest.TestCase):
    @staticmethod
    def _no_dirs(path: str) -> bool:
        return False

    def test_trailing_slash_keeps_default_pattern(self) -> None:
        self.assertEqual(split_output_path("/out/", is_dir=self._no_dirs), ("/out/", DEFAULT_BUILD_NAME_FMT))
        self.assertEqual(DEFAULT_BUILD_NAME_FMT, "%{NAME}-%{VERSION}-%{RELEASE}.%{ARCH}.rpm")

    def test_explicit_filename(self) -> None:
        self.assertEqual(split_output_path("/out/custom.rpm", is_dir=self._no_dirs), ("/out", "custom.rpm"))

    def test_file_at_filesystem_root(self) -> None:
        self.assertEqual(split_output_path("/pkg.rpm", is_dir=self._no_dirs), ("/", "pkg.rpm"))

    def test_existing_directory_without_trailing_slash(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(split_output_path(tmp), (tmp, DEFAULT_BUILD_NAME_FMT))

    def test_bare_filename_redirects_to_root_compatibility_risk(self) -> None:
        # Kept for compatibility: a bare filename writes the RPM into "/".
        self.assertEqual(split_output_path("custom.rpm", is_dir=self._no_dirs), ("/", "custom.rpm"))

    def test_relative_directory_is_anchored_at_base(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            (Path(tmp) / "dist").mkdir()
            self.assertEqual(resolve_output_path("dist", tmp), f"{tmp}/dist")
            self.assertEqual(resolve_output_path("out/", tmp), f"{tmp}/out/")
            self.assertEqual(resolve_output_path("out/pkg.rpm", tmp), f"{tmp}/out/pkg.rpm")

    def test_absolute_and_bare_paths_are_unchanged(self) -> None:
        self.assertEqual(resolve_output_path("/out/pkg.rpm", "/work", is_dir=self._no_dirs), "/out/pkg.rpm")
        self.assertEqual(resolve_output_path("custom.rpm", "/work", is_dir=self._no_dirs), "custom.rpm")


class RpmbuildTreeTests(unittest.TestCase):
    def test_tree_creation_is_idempotent(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp) / "rpmbuild"
            create_rpmbuild_tree(root)
            (root / "SPECS" / "keep.spec").write_text("x")
            create_rpmbuild_tree(root)
            self.assertEqual(sorted(p.name for p in root.iterdir()), sorted(RPMBUILD_SUBDIRS))
            self.assertEqual((root / "SPECS" / "keep.spec").read_text(), "x")


class BuilderPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        self.manifest = self.root / "Cargo.toml"
        self.manifest.write_text(
            textwrap.dedent(
                """
                [package]
                name = "foo"
                version = "1.2.3"

                [package.metadata.rpm]
                release = "1"

                [package.metadata.rpm.cargo]
                buildflags = ["--release"]

                [package.metadata.rpm.targets]
                foo = { path = "/usr/bin/foo" }

                [package.metadata.rpm.files]
                "foo.conf" = { path = "/etc/foo/foo.conf", mode = "600" }
                """
            )
        )
        rpm_dir = self.root / ".rpm"
        rpm_dir.mkdir()
        (rpm_dir / "foo.spec").write_text("Name: foo\nVersion: @@VERSION@@\nRelease: @@RELEASE@@\n")
        (rpm_dir / "foo.conf").write_text("key = value\n")
        self.target = self.root / "target"
        (self.target / "release").mkdir(parents=True)
        (self.target / "release" / "foo").write_bytes(b"\x7fELF")

        self.runner = RecordingCommandRunner()
        self.runner.script("rpmbuild", stdout="RPM version 4.18.2\n")
        self.output = io.StringIO()
        self.console = Console("info", stream=self.output, err_stream=io.StringIO())

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _builder(self, **overrides) -> Builder:
        options = {"verbose": False, "no_cargo_build": False, "output_path": None}
        options.update(overrides)
        context = BuildContext.create(
            load_package_config(self.manifest),
            rpm_config_dir=self.root / ".rpm",
            base_target_dir=self.target,
            **options,
        )
        return Builder(context, runner=self.runner, console=self.console, which=_fake_which)

    def test_names_follow_package_version_release(self) -> None:
        builder = self._builder()
        self.assertEqual(builder.archive_filename, "foo-1.2.3.tar.gz")
        self.assertEqual(builder.rpm_file, "foo-1.2.3-1.rpm")

    def test_full_build_runs_steps_in_order(self) -> None:
        builder = self._builder()
        builder.build()

        commands = [record.command for record in self.runner.iter_commands()]
        self.assertEqual(commands[0], ["cargo", "build", "--release"])
        self.assertEqual(commands[1], ["/usr/bin/rpmbuild", "--version"])
        self.assertEqual(commands[2][:3], ["/usr/bin/rpmbuild", "-ba", "SPECS/foo.spec"])

        rpmbuild_dir = self.target / "release" / "rpmbuild"
        cargo_record, _, rpmbuild_record = self.runner.commands
        self.assertEqual(cargo_record.cwd, str(self.root))
        self.assertEqual(rpmbuild_record.cwd, str(rpmbuild_dir))

        spec = (rpmbuild_dir / "SPECS" / "foo.spec").read_text()
        self.assertEqual(spec, "Name: foo\nVersion: 1.2.3\nRelease: 1\n")
        for name in RPMBUILD_SUBDIRS:
            self.assertTrue((rpmbuild_dir / name).is_dir())

        output = self.output.getvalue()
        self.assertIn("Building foo-1.2.3-1.rpm (using rpmbuild 4.18.2)", output)
        self.assertIn("Finished foo-1.2.3-1.rpm: built in", output)

    def test_archive_layout(self) -> None:
        archive_path = self._builder().create_archive()
        self.assertEqual(archive_path.name, "foo-1.2.3.tar.gz")
        with tarfile.open(archive_path, "r:gz") as tar:
            members = {member.name: member for member in tar.getmembers()}
        self.assertEqual(sorted(members), ["foo-1.2.3/etc/foo/foo.conf", "foo-1.2.3/usr/bin/foo"])
        self.assertEqual(members["foo-1.2.3/usr/bin/foo"].mode, 0o755)
        self.assertEqual(members["foo-1.2.3/etc/foo/foo.conf"].mode, 0o600)
        self.assertEqual(members["foo-1.2.3/usr/bin/foo"].uname, "root")

    def test_no_cargo_build_skips_compiler(self) -> None:
        self._builder(no_cargo_build=True).build()
        programs = [record.command[0] for record in self.runner.iter_commands()]
        self.assertNotIn("cargo", programs)

    def test_compiler_failure_aborts_before_archive_and_spec(self) -> None:
        self.runner.script("cargo", returncode=7)
        with self.assertRaises(ExternalCommandError) as ctx:
            self._builder().build()
        self.assertEqual(ctx.exception.exit_code, 7)

        rpmbuild_dir = self.target / "release" / "rpmbuild"
        self.assertFalse((rpmbuild_dir / "SOURCES" / "foo-1.2.3.tar.gz").exists())
        self.assertFalse((rpmbuild_dir / "SPECS" / "foo.spec").exists())
        self.assertEqual(len(self.runner.commands), 1)

    def test_cargo_flags_put_target_first(self) -> None:
        self.manifest.write_text(
            textwrap.dedent(
                """
                [package]
                name = "foo"
                version = "1.2.3"

                [package.metadata.rpm.cargo]
                target = "aarch64-unknown-linux-gnu"
                buildflags = ["--release", "--locked"]
                """
            )
        )
        builder = self._builder()
        self.assertEqual(
            builder.cargo_buildflags(),
            ["--target=aarch64-unknown-linux-gnu", "--release", "--locked"],
        )

    def test_missing_template_is_reported_distinctly(self) -> None:
        (self.root / ".rpm" / "foo.spec").unlink()
        with self.assertRaises(TemplateNotFoundError) as ctx:
            self._builder().render_spec()
        self.assertNotIsInstance(ctx.exception, MissingMetadataError)

    def test_render_truncates_existing_spec(self) -> None:
        builder = self._builder()
        spec_dir = self.target / "release" / "rpmbuild" / "SPECS"
        spec_dir.mkdir(parents=True)
        (spec_dir / "foo.spec").write_text("stale content " * 100)
        builder.render_spec()
        self.assertEqual((spec_dir / "foo.spec").read_text(), "Name: foo\nVersion: 1.2.3\nRelease: 1\n")

    def test_rpmbuild_args_without_output_path(self) -> None:
        builder = self._builder()
        topdir = (self.target / "release" / "rpmbuild").absolute()
        self.assertIsNone(builder.output_location())
        self.assertEqual(
            builder.rpmbuild_args(),
            ["-ba", "SPECS/foo.spec", "-D", f"_topdir {topdir}", "-D", f"_tmppath {topdir}/tmp"],
        )

    def test_rpmbuild_args_with_output_file_and_arch(self) -> None:
        text = self.manifest.read_text().replace('release = "1"', 'release = "1"\ntarget_architecture = "x86_64"')
        self.manifest.write_text(text)

        builder = self._builder(output_path="/out/custom.rpm")
        args = builder.rpmbuild_args()
        self.assertEqual(args[6:], ["-D", "_rpmdir /out", "-D", "_build_name_fmt custom.rpm", "--target", "x86_64"])

    def test_rpmbuild_args_with_output_directory(self) -> None:
        args = self._builder(output_path="/out/").rpmbuild_args()
        self.assertEqual(args[6:], ["-D", "_rpmdir /out/", "-D", f"_build_name_fmt {DEFAULT_BUILD_NAME_FMT}"])

    def test_relative_output_directory_becomes_absolute(self) -> None:
        dist = self.root / "dist"
        dist.mkdir()
        with patch("rpmpack.builder.os.getcwd", return_value=str(self.root)):
            args = self._builder(output_path="dist").rpmbuild_args()
        self.assertEqual(args[6:], ["-D", f"_rpmdir {dist}", "-D", f"_build_name_fmt {DEFAULT_BUILD_NAME_FMT}"])

    def test_relative_output_file_keeps_its_directory(self) -> None:
        with patch("rpmpack.builder.os.getcwd", return_value=str(self.root)):
            location = self._builder(output_path="dist/pkg.rpm").output_location()
        self.assertEqual(location, (str(self.root / "dist"), "pkg.rpm"))

    def test_unusable_rpmbuild_aborts_before_work_tree(self) -> None:
        self.runner.script("rpmbuild", returncode=3)
        with self.assertRaises(ExternalCommandError) as ctx:
            self._builder(no_cargo_build=True).rpmbuild()
        self.assertEqual(ctx.exception.exit_code, 3)
        self.assertFalse((self.target / "release" / "rpmbuild" / "RPMS").exists())

    def test_missing_rpmbuild_is_fatal(self) -> None:
        context = self._builder().context
        builder = Builder(context, runner=self.runner, console=self.console, which=lambda name: None)
        with self.assertRaises(ToolNotFoundError):
            builder.rpmbuild()


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
