"""Scaffold the ``.rpm`` directory and manifest metadata for a project."""
from __future__ import annotations

from pathlib import Path
import textwrap

from core.template import TemplateError, TemplateResolver

from .config import PackageConfig
from .console import Console
from .errors import ConfigurationError

SPEC_SKELETON = textwrap.dedent(
    """\
    %define __spec_install_post %{nil}
    %define __os_install_post %{_dbpath}/brp-compress
    %define debug_package %{nil}

    Name: {{package.name}}
    Summary: {{package.summary}}
    Version: @@VERSION@@
    Release: @@RELEASE@@%{?dist}
    License: {{package.license}}
    Group: Applications/System
    Source0: %{name}-%{version}.tar.gz
    URL: {{package.url}}

    BuildRoot: %{_tmppath}/%{name}-%{version}-%{release}-root

    %description
    %{summary}

    %prep
    %setup -q

    %install
    rm -rf %{buildroot}
    mkdir -p %{buildroot}
    cp -a * %{buildroot}

    %clean
    rm -rf %{buildroot}

    %files
    %defattr(-,root,root,-)
    %{_bindir}/*
    """
)


def metadata_block(config: PackageConfig) -> str:
    """TOML for a default ``[package.metadata.rpm]`` section."""
    name = config.name
    return textwrap.dedent(
        f"""
        [package.metadata.rpm]
        package = "{name}"

        [package.metadata.rpm.cargo]
        buildflags = ["--release"]

        [package.metadata.rpm.targets]
        {name} = {{ path = "/usr/bin/{name}" }}
        """
    )


def render_spec_skeleton(config: PackageConfig) -> str:
    resolver = TemplateResolver(
        {
            "package": {
                "name": config.rpm_name(),
                "summary": config.description or config.name,
                "license": config.license or "FIXME",
                "url": config.homepage or "FIXME",
            }
        }
    )
    try:
        return resolver.resolve(SPEC_SKELETON)
    except TemplateError as exc:
        raise ConfigurationError(f"Could not render the spec skeleton: {exc}") from exc


def init_project(
    config: PackageConfig,
    *,
    manifest_path: Path,
    rpm_config_dir: Path,
    console: Console,
    force: bool = False,
) -> Path:
    """Write ``<rpm_config_dir>/<name>.spec`` and add RPM metadata to the manifest.

    Returns the path of the spec template.
    """
    spec_path = rpm_config_dir / f"{config.rpm_name()}.spec"
    if spec_path.exists() and not force:
        raise ConfigurationError(
            f"{spec_path} already exists",
            hint="Use 'rpmpack init --force' to overwrite it",
        )

    rpm_config_dir.mkdir(parents=True, exist_ok=True)
    spec_path.write_text(render_spec_skeleton(config), encoding="utf-8")
    console.status("Created", str(spec_path))

    if config.rpm is None:
        if manifest_path.suffix.lower() == ".toml":
            with manifest_path.open("a", encoding="utf-8") as handle:
                handle.write(metadata_block(config))
            console.status("Updated", f"{manifest_path} with [package.metadata.rpm]")
        else:
            console.info(f"Add a package.metadata.rpm section to {manifest_path} by hand")

    return spec_path


__all__ = ["SPEC_SKELETON", "init_project", "metadata_block", "render_spec_skeleton"]
