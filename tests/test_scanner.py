"""Tests for scanner module."""

import pytest
from pathlib import Path
import tempfile

from graph.model import ImportKind, ImportReference, OccurrenceKind
from scanner.imports import (
    classify_import,
    clean_token,
    extract_imports,
    scan_imports,
    strip_comment,
)
from scanner.keys import scan_keys
from scanner.resolver import resolve_reference, canonicalize, display_path


CONFIGURATION = """\
{ config, pkgs, lib, ... }:
{
  imports = [
    ./hardware-configuration.nix  # generated
    ../shared/common.nix
    /etc/nixos/modules/custom/monitoring.nix
    <nixpkgs/nixos/modules/installer/scan/not-detected.nix>
    (lib.mkIf (config.networking.hostName == "king") ./modules/hosts/king.nix)
  ];

  services.nginx.enable = true;
}
"""

FLAKE = """\
{
  inputs = {
    nixpkgs.url = "github:NixOS/nixpkgs/nixos-25.05";
    local.url = "path:./sub";
  };
  outputs = { self, nixpkgs, ... }: {
    nixosConfigurations.web = nixpkgs.lib.nixosSystem {
      system = "x86_64-linux";
      modules = [
        ./configuration.nix
        ./webserver.nix
        ({ pkgs, ... }: {
          imports = [ ./extra.nix ];
        })
      ];
    };
  };
}
"""


class TestImportExtraction:
    """Tests for import extraction from file text."""

    def test_multiline_imports(self):
        """Test extracting and classifying a multi-line imports list."""
        refs = extract_imports(CONFIGURATION)

        assert [(r.raw, r.kind, r.line) for r in refs] == [
            ("./hardware-configuration.nix", ImportKind.RELATIVE, 4),
            ("../shared/common.nix", ImportKind.RELATIVE, 5),
            ("/etc/nixos/modules/custom/monitoring.nix", ImportKind.ABSOLUTE, 6),
            ("<nixpkgs/nixos/modules/installer/scan/not-detected.nix>", ImportKind.EXTERNAL, 7),
            (
                '(lib.mkIf (config.networking.hostName == "king") ./modules/hosts/king.nix)',
                ImportKind.DYNAMIC,
                8,
            ),
        ]
        assert all(r.section == "imports" for r in refs)

    def test_single_line_imports(self):
        """Test a list opened and closed on the same line."""
        refs = extract_imports("{ imports = [ ./a.nix ./b.nix ]; }")

        assert [r.raw for r in refs] == ["./a.nix", "./b.nix"]
        assert all(r.line == 1 for r in refs)

    def test_quoted_comma_separated(self):
        """Test quoted elements separated by commas with a custom extension."""
        refs = extract_imports('imports = ["./a.cfg", "./b.cfg"];', extension=".cfg")

        assert [(r.raw, r.kind) for r in refs] == [
            ("./a.cfg", ImportKind.RELATIVE),
            ("./b.cfg", ImportKind.RELATIVE),
        ]

    def test_trailing_separators(self):
        """Test that trailing commas and semicolons are tolerated."""
        refs = extract_imports("imports = [ ./a.nix, ./b.nix, ];")

        assert [r.raw for r in refs] == ["./a.nix", "./b.nix"]

    def test_no_imports(self):
        """Test a file without any import list."""
        assert extract_imports("{ services.nginx.enable = true; }") == []

    def test_flake_modules_and_inputs(self):
        """Test flake module lists, inline modules and local path inputs."""
        refs = extract_imports(FLAKE)

        assert [(r.raw, r.section, r.line) for r in refs] == [
            ("./sub/flake.nix", "inputs", 4),
            ("./configuration.nix", "modules", 10),
            ("./webserver.nix", "modules", 11),
            ("./extra.nix", "imports", 13),
        ]
        assert all(r.kind == ImportKind.RELATIVE for r in refs)

    def test_absolute_path_input(self):
        """Test a path input with an absolute directory."""
        refs = extract_imports('inputs.shared.url = "path:/srv/shared";')

        assert refs == [ImportReference("/srv/shared/flake.nix", ImportKind.ABSOLUTE, 1, "inputs")]

    def test_unterminated_string_is_skipped(self):
        """Test that an unparseable line is reported and the rest still extracted."""
        text = 'imports = [\n  "./a.nix\n  ./b.nix\n];\n'

        scan = scan_imports(text)

        assert scan.skipped == [2]
        assert [r.raw for r in scan.references] == ["./b.nix"]

    def test_commented_out_import(self):
        """Test that commented-out elements are ignored."""
        text = "imports = [\n  # ./old.nix\n  ./new.nix\n];"

        refs = extract_imports(text)

        assert [r.raw for r in refs] == ["./new.nix"]

    def test_content_after_list_is_not_imported(self):
        """Test that the list ends at its closing bracket."""
        text = "imports = [ ./a.nix ];\nenvironment.etc.\"x.nix\".source = ./b.nix;"

        refs = extract_imports(text)

        assert [r.raw for r in refs] == ["./a.nix"]


class TestImportClassification:
    """Tests for import token classification."""

    @pytest.mark.parametrize("token,expected", [
        ("./a.nix", ImportKind.RELATIVE),
        ("../shared/b.nix", ImportKind.RELATIVE),
        ("/etc/nixos/c.nix", ImportKind.ABSOLUTE),
        ("<nixpkgs>", ImportKind.EXTERNAL),
        ("<home-manager/nixos>", ImportKind.EXTERNAL),
        ("./modules", ImportKind.DYNAMIC),
        ("inputs.home-manager.nixosModules.default", ImportKind.DYNAMIC),
        ("(import ./x.nix { })", ImportKind.DYNAMIC),
    ])
    def test_classify(self, token, expected):
        """Test classification of typical tokens."""
        assert classify_import(token) == expected

    def test_classify_custom_extension(self):
        """Test that the extension decides what counts as a file path."""
        assert classify_import("./a.cfg", ".cfg") == ImportKind.RELATIVE
        assert classify_import("./a.cfg") == ImportKind.DYNAMIC

    def test_clean_token(self):
        """Test token cleaning."""
        assert clean_token('  "./a.nix",  ') == "./a.nix"
        assert clean_token("'./a.nix';") == "./a.nix"
        assert clean_token("./a.nix") == "./a.nix"

    def test_strip_comment(self):
        """Test comment stripping outside strings."""
        assert strip_comment("./a.nix # note") == "./a.nix "
        assert strip_comment('x = "#notacomment";') == 'x = "#notacomment";'


class TestKeyScanning:
    """Tests for recognized key scanning."""

    def test_enabled_package_and_reference(self):
        """Test classification of single-line assignments."""
        path = Path("/cfg/a.nix")
        text = (
            "services.nginx.enable = true;\n"
            "services.mysql.package = pkgs.mariadb;\n"
            'services.nginx.virtualHosts."a.local".root = "/var/www";\n'
        )

        occurrences = scan_keys(text, path)

        assert [(o.key, o.line, o.kind) for o in occurrences] == [
            ("services.nginx", 1, OccurrenceKind.ENABLED),
            ("services.mysql", 2, OccurrenceKind.PACKAGE_ASSIGNMENT),
            ("services.nginx", 3, OccurrenceKind.REFERENCE),
        ]
        assert all(o.path == path for o in occurrences)

    def test_mkdefault_true_counts_as_enabled(self):
        """Test that wrapped boolean values are recognized."""
        occurrences = scan_keys("services.redis.enable = lib.mkDefault true;", Path("/cfg/r.nix"))

        assert occurrences[0].kind == OccurrenceKind.ENABLED

    def test_disabled_is_reference(self):
        """Test that an explicit false is not counted as enabled."""
        occurrences = scan_keys("services.redis.enable = false;", Path("/cfg/r.nix"))

        assert occurrences[0].kind == OccurrenceKind.REFERENCE

    def test_block_assignments(self):
        """Test enable/package inside a `key = { ... }` block."""
        text = (
            "services.nginx = {\n"
            "  enable = lib.mkDefault true;\n"
            "  package = pkgs.nginxMainline;\n"
            '  virtualHosts."a.local" = {\n'
            "    enable = true;\n"
            "  };\n"
            "};\n"
            "enable = true;\n"
        )

        occurrences = scan_keys(text, Path("/cfg/nginx.nix"))

        assert [(o.key, o.line, o.kind) for o in occurrences] == [
            ("services.nginx", 1, OccurrenceKind.REFERENCE),
            ("services.nginx", 2, OccurrenceKind.ENABLED),
            ("services.nginx", 3, OccurrenceKind.PACKAGE_ASSIGNMENT),
        ]

    def test_single_line_block(self):
        """Test a block opened and closed on one line."""
        occurrences = scan_keys("services.nginx = { enable = true; };", Path("/cfg/n.nix"))

        assert [(o.line, o.kind) for o in occurrences] == [(1, OccurrenceKind.ENABLED)]

    def test_whole_segment_match(self):
        """Test that longer option names are not mistaken for a key."""
        text = (
            "services.nginxExporter.enable = true;\n"
            "services.nginx-proxy.enable = true;\n"
            "myservices.nginx.enable = true;\n"
        )

        assert scan_keys(text, Path("/cfg/x.nix")) == []

    def test_comments_ignored(self):
        """Test that commented-out definitions are not recorded."""
        text = "# services.nginx.enable = true;\nservices.mysql.enable = true; # services.nginx\n"

        occurrences = scan_keys(text, Path("/cfg/x.nix"))

        assert [o.key for o in occurrences] == ["services.mysql"]

    def test_repeated_matches_all_recorded(self):
        """Test that every matching line in a file is recorded."""
        text = "services.nginx.enable = true;\nservices.nginx.enable = true;\n"

        occurrences = scan_keys(text, Path("/cfg/x.nix"))

        assert [o.line for o in occurrences] == [1, 2]

    def test_custom_vocabulary(self):
        """Test scanning for keys outside the default vocabulary."""
        text = "services.caddy.enable = true;\nservices.nginx.enable = true;\n"

        occurrences = scan_keys(text, Path("/cfg/x.nix"), vocabulary=["services.caddy"])

        assert [o.key for o in occurrences] == ["services.caddy"]

    def test_undecodable_bytes(self):
        """Test that binary content yields no matches instead of raising."""
        content = b"\xff\xfe\x00services.nginx.enable = true;"

        assert scan_keys(content, Path("/cfg/bin.nix")) == []

    def test_utf8_bytes(self):
        """Test that valid UTF-8 bytes are scanned."""
        occurrences = scan_keys(b"services.nginx.enable = true;", Path("/cfg/x.nix"))

        assert len(occurrences) == 1


class TestPathResolution:
    """Tests for reference resolution."""

    def test_resolve_relative_to_source(self):
        """Test resolving a relative import against the importing file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            source = root / "hosts" / "web.nix"
            source.parent.mkdir()
            source.touch()

            ref = ImportReference("../modules/nginx.nix", ImportKind.RELATIVE, 1)
            resolved = resolve_reference(source, ref)

            assert resolved == (root / "modules" / "nginx.nix").resolve()

    def test_resolve_absolute(self):
        """Test that absolute imports are used as-is."""
        ref = ImportReference("/etc/nixos/a.nix", ImportKind.ABSOLUTE, 1)

        assert resolve_reference(Path("/cfg/x.nix"), ref) == canonicalize(Path("/etc/nixos/a.nix"))

    def test_unresolvable_kinds(self):
        """Test that channel and dynamic imports do not resolve."""
        source = Path("/cfg/x.nix")

        assert resolve_reference(source, ImportReference("<nixpkgs>", ImportKind.EXTERNAL, 1)) is None
        assert resolve_reference(source, ImportReference("foo", ImportKind.DYNAMIC, 1)) is None

    def test_canonicalize_symlink(self):
        """Test that a symlink and its target share one identity."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            target = root / "real.nix"
            target.touch()
            link = root / "link.nix"
            link.symlink_to(target)

            assert canonicalize(link) == canonicalize(target)
            assert canonicalize(root / "sub" / ".." / "real.nix") == canonicalize(target)

    def test_display_path(self):
        """Test relative display paths."""
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)

            assert display_path(root / "modules" / "a.nix", root) == "modules/a.nix"
            assert display_path(Path("/elsewhere/b.nix"), root) == "/elsewhere/b.nix"
