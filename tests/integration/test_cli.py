"""Integration tests for syftpack CLI commands.

These tests run the Typer app in-process. HTTP is served by an in-memory
session patched over requests.get; Syft itself is the fake CLI.
"""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from typer.testing import CliRunner

from syftpack import __version__
from syftpack.cli import app
from syftpack.inventory import Checksum, load_inventory

from tests.fixtures import artifact_url, fake_session

runner = CliRunner()

CHECKSUMS_TXT = (
    f"{'a' * 64}  syft_1.34.2_linux_amd64.tar.gz\n"
    f"{'b' * 64}  syft_1.34.2_linux_amd64.tar.gz.sbom\n"
    f"{'c' * 64}  syft_1.34.2_darwin_arm64.tar.gz\n"
    f"{'d' * 64}  syft_1.34.2_linux_ppc64le.tar.gz\n"
    f"{'e' * 64}  syft_1.34.2_windows_amd64.zip\n"
)


@pytest.fixture(autouse=True)
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from an empty directory on linux/amd64."""
    path = tmp_path / "work"
    path.mkdir()
    monkeypatch.chdir(path)
    monkeypatch.setattr("platform.system", lambda: "Linux")
    monkeypatch.setattr("platform.machine", lambda: "x86_64")
    return path


@pytest.fixture
def config_file(tmp_path: Path, inventory_text: str) -> Path:
    """Config pointing at the multi-version test inventory."""
    inventory_path = tmp_path / "inventory.toml"
    inventory_path.write_text(inventory_text)
    path = tmp_path / "syftpack.yaml"
    path.write_text(yaml.safe_dump({"inventory": {"path": str(inventory_path)}}))
    return path


@pytest.fixture
def empty_inventory_config(tmp_path: Path) -> Path:
    """Config pointing at an inventory with no entries."""
    inventory_path = tmp_path / "empty.toml"
    inventory_path.write_text("# no releases\n")
    path = tmp_path / "empty.yaml"
    path.write_text(yaml.safe_dump({"inventory": {"path": str(inventory_path)}}))
    return path


class TestGlobalOptions:
    """Tests for options on the main callback."""

    def test_version(self) -> None:
        """Test --version prints and exits."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert result.output.strip() == f"syftpack {__version__}"

    def test_missing_config_file(self, tmp_path: Path) -> None:
        """Test a --config path that does not exist is rejected."""
        result = runner.invoke(app, ["--config", str(tmp_path / "missing.yaml"), "detect"])

        assert result.exit_code != 0

    def test_invalid_config(self, tmp_path: Path) -> None:
        """Test a config that fails validation."""
        path = tmp_path / "bad.yaml"
        path.write_text("tool:\n  version: latest\n")

        result = runner.invoke(app, ["--config", str(path), "detect"])

        assert result.exit_code == 1
        assert "Failed to load config" in result.output

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test a config that is not YAML exits 1 with a message."""
        path = tmp_path / "broken.yaml"
        path.write_text("tool: [unclosed\n")

        result = runner.invoke(app, ["--config", str(path), "detect"])

        assert result.exit_code == 1
        assert "Failed to load config: Invalid YAML" in result.output

    def test_section_with_only_comments(self, tmp_path: Path) -> None:
        """Test a section left empty by comments loads as defaults."""
        path = tmp_path / "commented.yaml"
        path.write_text("tool:\n  # version: '1.34.2'\nci:\n")

        result = runner.invoke(app, ["--config", str(path), "resolve"])

        assert result.exit_code == 0, result.output
        assert result.output.startswith("syft 1.34.2 (linux/amd64)")

    def test_json_output_from_config(self, tmp_path: Path) -> None:
        """Test ci.json_output switches log lines to JSON without --ci."""
        path = tmp_path / "ci.yaml"
        path.write_text("ci:\n  json_output: true\n")

        result = runner.invoke(app, ["--config", str(path), "init"])

        assert result.exit_code == 0, result.output
        entry = json.loads(result.output.strip().splitlines()[-1])
        assert entry["level"] == "INFO"
        assert entry["msg"].startswith("Created config:")

    def test_discovers_config_in_cwd(self, workdir: Path, inventory_text: str) -> None:
        """Test ./syftpack.yaml is picked up without --config."""
        (workdir / "inventory.toml").write_text(inventory_text)
        (workdir / "syftpack.yaml").write_text(
            "tool:\n  version: '~1.33.0'\ninventory:\n  path: inventory.toml\n"
        )

        result = runner.invoke(app, ["resolve"])

        assert result.exit_code == 0, result.output
        assert result.output.startswith("syft 1.33.0 (linux/amd64)")


class TestDetect:
    """Tests for `syftpack detect`."""

    def test_detect_passes(self) -> None:
        """Test detection always passes."""
        result = runner.invoke(app, ["detect"])

        assert result.exit_code == 0


class TestResolve:
    """Tests for `syftpack resolve`."""

    def test_resolve_packaged_inventory(self) -> None:
        """Test packaged entries show where their checksum comes from."""
        result = runner.invoke(app, ["resolve", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["version"] == "1.34.2"
        assert data["checksum"] is None
        assert data["checksums_url"].endswith("/v1.34.2/syft_1.34.2_checksums.txt")

    def test_resolve_text(self, config_file: Path) -> None:
        """Test the text summary of the resolved artifact."""
        result = runner.invoke(app, ["--config", str(config_file), "resolve"])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "syft 1.34.2 (linux/amd64)"
        assert artifact_url("1.34.2", "linux", "amd64") in lines[1]
        assert "sha256:" in lines[2]

    def test_resolve_json(self, config_file: Path) -> None:
        """Test JSON output for another platform and constraint."""
        result = runner.invoke(
            app,
            [
                "--config", str(config_file),
                "resolve",
                "--os", "darwin",
                "--arch", "arm64",
                "--version", "<1.34.0",
                "--json",
            ],
        )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["version"] == "1.33.0"
        assert data["url"] == artifact_url("1.33.0", "darwin", "arm64")

    def test_resolve_no_match(self, config_file: Path) -> None:
        """Test a failed resolution names its stage."""
        result = runner.invoke(
            app, ["--config", str(config_file), "resolve", "--version", ">=9.0.0"]
        )

        assert result.exit_code == 1
        assert "[resolve] No valid artifacts for linux/amd64" in result.output

    def test_resolve_invalid_platform(self, config_file: Path) -> None:
        """Test an unknown --os value."""
        result = runner.invoke(app, ["--config", str(config_file), "resolve", "--os", "plan9"])

        assert result.exit_code == 1
        assert "Invalid platform" in result.output

    def test_resolve_invalid_constraint(self, config_file: Path) -> None:
        """Test a malformed --version value."""
        result = runner.invoke(
            app, ["--config", str(config_file), "resolve", "--version", "^newest"]
        )

        assert result.exit_code == 1
        assert "Invalid version constraint" in result.output


class TestInventoryCommands:
    """Tests for `syftpack inventory`."""

    def test_generate_from_checksums_file(self, tmp_path: Path) -> None:
        """Test entries are rendered for supported platforms only."""
        checksums = tmp_path / "checksums.txt"
        checksums.write_text(CHECKSUMS_TXT)

        result = runner.invoke(
            app, ["inventory", "generate", "v1.34.2", "--checksums-file", str(checksums)]
        )

        assert result.exit_code == 0, result.output
        inventory = load_inventory(result.output)
        platforms = [(a.os.value, a.arch.value) for a in inventory]
        assert platforms == [("darwin", "arm64"), ("linux", "amd64")]
        linux = inventory.artifacts[1]
        assert linux.checksum == Checksum.parse(f"sha256:{'a' * 64}")
        assert linux.metadata.sbom is not None
        assert linux.metadata.sbom.url.endswith("syft_1.34.2_linux_amd64.tar.gz.sbom")

    def test_generate_downloads_checksums(self) -> None:
        """Test the checksums file is fetched from the release."""
        url = "https://mirror.example/syft/v1.34.2/syft_1.34.2_checksums.txt"
        session = fake_session({url: CHECKSUMS_TXT.encode()})

        with patch("syftpack.provision.fetcher.requests.get", side_effect=session.get):
            result = runner.invoke(
                app,
                [
                    "--quiet",
                    "inventory", "generate", "1.34.2",
                    "--base-url", "https://mirror.example/syft/",
                ],
            )

        assert result.exit_code == 0, result.output
        assert session.get.call_args.args[0] == url
        inventory = load_inventory(result.output)
        assert all(a.url.startswith("https://mirror.example/syft/v1.34.2/") for a in inventory)

    def test_generate_nothing_supported(self, tmp_path: Path) -> None:
        """Test a release listing no supported archives."""
        checksums = tmp_path / "checksums.txt"
        checksums.write_text(f"{'e' * 64}  syft_1.34.2_windows_amd64.zip\n")

        result = runner.invoke(
            app, ["inventory", "generate", "1.34.2", "--checksums-file", str(checksums)]
        )

        assert result.exit_code == 1
        assert "No supported artifacts listed for Syft 1.34.2" in result.output

    def test_generate_bad_checksums(self, tmp_path: Path) -> None:
        """Test a malformed checksums line fails with the inventory stage."""
        checksums = tmp_path / "checksums.txt"
        checksums.write_text("not-a-valid-line-at-all\n")

        result = runner.invoke(
            app, ["inventory", "generate", "1.34.2", "--checksums-file", str(checksums)]
        )

        assert result.exit_code == 1
        assert "[inventory]" in result.output

    def test_list(self, config_file: Path) -> None:
        """Test one line per artifact."""
        result = runner.invoke(app, ["--config", str(config_file), "inventory", "list"])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert len(lines) == 12
        assert lines[0] == "1.33.0\tlinux/amd64"

    def test_list_packaged_inventory(self) -> None:
        """Test the packaged inventory lists the 1.34.2 tar.gz platforms."""
        result = runner.invoke(app, ["inventory", "list"])

        assert result.exit_code == 0
        assert result.output.splitlines() == [
            "1.34.2\tdarwin/amd64",
            "1.34.2\tdarwin/arm64",
            "1.34.2\tlinux/amd64",
            "1.34.2\tlinux/arm64",
        ]

    def test_list_empty_inventory(self, empty_inventory_config: Path) -> None:
        """Test an inventory without entries."""
        result = runner.invoke(app, ["--config", str(empty_inventory_config), "inventory", "list"])

        assert result.exit_code == 0
        assert "Inventory is empty" in result.output


class TestCheck:
    """Tests for `syftpack check`."""

    def test_check_passes(self, config_file: Path) -> None:
        """Test a resolvable inventory passes."""
        result = runner.invoke(app, ["--config", str(config_file), "check"])

        assert result.exit_code == 0, result.output
        assert "Preflight Check Results" in result.output
        assert "All preflight checks passed" in result.output

    def test_check_uncached_layer_warns(self, config_file: Path, layers_dir: Path) -> None:
        """Test an empty layers directory exits 2."""
        result = runner.invoke(
            app, ["--config", str(config_file), "check", "--layers", str(layers_dir)]
        )

        assert result.exit_code == 2
        assert "passed with WARNINGS" in result.output

    def test_check_packaged_inventory(self) -> None:
        """Test the packaged inventory passes the preflight on linux/amd64."""
        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0, result.output
        assert "All preflight checks passed" in result.output

    def test_check_empty_inventory_fails(self, empty_inventory_config: Path) -> None:
        """Test an inventory without entries fails the preflight."""
        result = runner.invoke(app, ["--config", str(empty_inventory_config), "check", "--json"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["success"] is False
        assert data["errors"][0].startswith("inventory check failed")


class TestInit:
    """Tests for `syftpack init`."""

    def test_init_creates_config(self, workdir: Path) -> None:
        """Test the default config is written."""
        result = runner.invoke(app, ["init"])

        assert result.exit_code == 0, result.output
        config = yaml.safe_load((workdir / ".syftpack" / "config.yaml").read_text())
        assert config["tool"]["version"] == "*"

    def test_init_refuses_overwrite(self, workdir: Path) -> None:
        """Test an existing config needs --force."""
        runner.invoke(app, ["init"])
        (workdir / ".syftpack" / "config.yaml").write_text("tool: {}\n")

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 1
        assert "Config already exists" in result.output
        assert (workdir / ".syftpack" / "config.yaml").read_text() == "tool: {}\n"

        result = runner.invoke(app, ["init", "--force"])

        assert result.exit_code == 0
        assert "sbom:" in (workdir / ".syftpack" / "config.yaml").read_text()


class TestBuild:
    """Tests for `syftpack build`."""

    @pytest.fixture
    def build_config(
        self, tmp_path: Path, release_archive: bytes, syft_document_bytes: bytes
    ) -> Path:
        """Config with a single-release inventory matching the fake archive."""
        url = artifact_url("1.34.2", "linux", "amd64")
        inventory_path = tmp_path / "release.toml"
        inventory_path.write_text(
            "[[artifacts]]\n"
            'version = "1.34.2"\nos = "linux"\narch = "amd64"\n'
            f'url = "{url}"\nchecksum = "{Checksum.of(release_archive)}"\n'
            "\n[artifacts.metadata.sbom]\n"
            f'url = "{url}.sbom"\nchecksum = "{Checksum.of(syft_document_bytes)}"\n'
        )
        path = tmp_path / "build.yaml"
        path.write_text(yaml.safe_dump({
            "inventory": {"path": str(inventory_path)},
            "sbom": {"formats": ["cyclonedx-json"]},
        }))
        return path

    def test_build_end_to_end(
        self,
        build_config: Path,
        sample_app: Path,
        tmp_path: Path,
        release_archive: bytes,
        syft_document_bytes: bytes,
    ) -> None:
        """Test a full build writes the layer and SBOM files."""
        url = artifact_url("1.34.2", "linux", "amd64")
        session = fake_session({url: release_archive, f"{url}.sbom": syft_document_bytes})
        layers = tmp_path / "out" / "layers"

        with patch("syftpack.provision.fetcher.requests.get", side_effect=session.get):
            result = runner.invoke(
                app,
                [
                    "--config", str(build_config),
                    "build",
                    "--app", str(sample_app),
                    "--layers", str(layers),
                ],
            )

        assert result.exit_code == 0, result.output
        assert "---> Downloading Syft v1.34.2" in result.output
        assert (layers / "syft" / "bin" / "syft").exists()
        assert sorted(p.name for p in layers.glob("*.sbom.*")) == [
            "launch.sbom.cdx.json",
            "launch.sbom.syft.json",
            "syft.sbom.cdx.json",
            "syft.sbom.syft.json",
        ]

    def test_build_json(
        self,
        build_config: Path,
        sample_app: Path,
        tmp_path: Path,
        release_archive: bytes,
        syft_document_bytes: bytes,
    ) -> None:
        """Test --json prints the build result."""
        url = artifact_url("1.34.2", "linux", "amd64")
        session = fake_session({url: release_archive, f"{url}.sbom": syft_document_bytes})

        with patch("syftpack.provision.fetcher.requests.get", side_effect=session.get):
            result = runner.invoke(
                app,
                [
                    "--quiet",
                    "--config", str(build_config),
                    "build",
                    "--app", str(sample_app),
                    "--layers", str(tmp_path / "layers"),
                    "--json",
                ],
            )

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["artifact"]["version"] == "1.34.2"
        assert data["sboms"]["launch"]["documents"]["cyclonedx-json"] > 0

    def test_build_checksum_failure(
        self, build_config: Path, sample_app: Path, tmp_path: Path
    ) -> None:
        """Test a tampered download fails the build at the verify stage."""
        url = artifact_url("1.34.2", "linux", "amd64")
        session = fake_session({url: b"tampered"})

        with patch("syftpack.provision.fetcher.requests.get", side_effect=session.get):
            result = runner.invoke(
                app,
                [
                    "--config", str(build_config),
                    "build",
                    "--app", str(sample_app),
                    "--layers", str(tmp_path / "layers"),
                ],
            )

        assert result.exit_code == 1
        assert "[verify] Checksum mismatch" in result.output

    def test_build_with_empty_inventory(
        self, empty_inventory_config: Path, sample_app: Path, tmp_path: Path
    ) -> None:
        """Test an inventory without entries fails at the resolve stage."""
        result = runner.invoke(
            app,
            [
                "--config", str(empty_inventory_config),
                "build",
                "--app", str(sample_app),
                "--layers", str(tmp_path / "layers"),
            ],
        )

        assert result.exit_code == 1
        assert "[resolve]" in result.output

    def test_build_with_packaged_inventory(
        self, sample_app: Path, tmp_path: Path, release_archive: bytes
    ) -> None:
        """Test the default config builds from the packaged 1.34.2 entries."""
        url = artifact_url("1.34.2", "linux", "amd64")
        checksums_url = url.rsplit("/", 1)[0] + "/syft_1.34.2_checksums.txt"
        session = fake_session({
            checksums_url: f"{Checksum.of(release_archive).hex_digest}  "
            "syft_1.34.2_linux_amd64.tar.gz\n".encode(),
            url: release_archive,
        })
        layers = tmp_path / "layers"

        with patch("syftpack.provision.fetcher.requests.get", side_effect=session.get):
            result = runner.invoke(
                app, ["build", "--app", str(sample_app), "--layers", str(layers)]
            )

        assert result.exit_code == 0, result.output
        assert f"---> Reading Syft v1.34.2 checksums from {checksums_url}" in result.output
        assert (layers / "syft" / "bin" / "syft").exists()
        assert (layers / "launch.sbom.cdx.json").exists()

    def test_build_unwritable_sbom_reports_stage(
        self,
        build_config: Path,
        sample_app: Path,
        tmp_path: Path,
        release_archive: bytes,
        syft_document_bytes: bytes,
    ) -> None:
        """Test an SBOM write failure exits 1 with the layer stage, not a traceback."""
        url = artifact_url("1.34.2", "linux", "amd64")
        session = fake_session({url: release_archive, f"{url}.sbom": syft_document_bytes})
        layers = tmp_path / "layers"
        (layers / "syft.sbom.cdx.json").mkdir(parents=True)

        with patch("syftpack.provision.fetcher.requests.get", side_effect=session.get):
            result = runner.invoke(
                app,
                [
                    "--config", str(build_config),
                    "build",
                    "--app", str(sample_app),
                    "--layers", str(layers),
                ],
            )

        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "[layer] Failed to write SBOM" in result.output
