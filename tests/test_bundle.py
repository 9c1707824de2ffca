from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from wasmer_pack.bundle import BundleAssembler
from wasmer_pack.descriptor import Descriptor
from wasmer_pack.errors import BundleIOError, PathEscapesBaseDirectory
from wasmer_pack.manifest import generate_manifest
from wasmer_pack.metadata import Package, Target

from workspace_fixtures import package_entry

TARGET = Target(name="hello", kinds=("bin",))


class BundleAssemblerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name).resolve()
        self.crate = self.root / "hello"
        self.crate.mkdir()
        self.artifact = self.root / "target" / "wasm32-wasi" / "release" / "hello.wasm"
        self.artifact.parent.mkdir(parents=True)
        self.artifact.write_bytes(b"\0asm\x01\0\0\0")
        self.dest = self.root / "target" / "wasmer"

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def _package(self, **overrides) -> Package:
        return Package.from_mapping(package_entry("hello", self.crate, **overrides))

    def _assemble(self, package: Package) -> Path:
        descriptor = generate_manifest(package, TARGET)
        return BundleAssembler().assemble(self.dest, descriptor, self.artifact, package)

    def test_minimal_bundle(self) -> None:
        dest = self._assemble(self._package())

        self.assertEqual(sorted(p.name for p in dest.iterdir()), ["hello.wasm", "wasmer.toml"])
        self.assertEqual((dest / "hello.wasm").read_bytes(), self.artifact.read_bytes())
        descriptor = Descriptor.read(dest / "wasmer.toml")
        self.assertEqual(descriptor.package.name, "wasmer/hello")
        self.assertEqual(descriptor.modules[0].source, "hello.wasm")

    def test_license_and_readme_are_hoisted(self) -> None:
        (self.crate / "legal").mkdir()
        (self.crate / "legal" / "LICENSE").write_text("MIT", encoding="utf-8")
        (self.crate / "docs").mkdir()
        (self.crate / "docs" / "README.md").write_text("# hello", encoding="utf-8")

        dest = self._assemble(self._package(license_file="legal/LICENSE", readme="docs/README.md"))

        self.assertEqual((dest / "LICENSE").read_text(encoding="utf-8"), "MIT")
        self.assertEqual((dest / "README.md").read_text(encoding="utf-8"), "# hello")
        descriptor = Descriptor.read(dest / "wasmer.toml")
        self.assertEqual(descriptor.package.license_file, "LICENSE")
        self.assertEqual(descriptor.package.readme, "README.md")

    def test_bindings_keep_their_relative_layout(self) -> None:
        (self.crate / "wai").mkdir()
        (self.crate / "wai" / "hello.wai").write_text("use { t } from types\n", encoding="utf-8")
        (self.crate / "wai" / "types.wai").write_text("record t { x: u8 }\n", encoding="utf-8")
        package = self._package(
            wasmer={
                "namespace": "wasmer",
                "abi": "wasi",
                "bindings": {"wai-version": "0.2.0", "exports": "wai/hello.wai"},
            }
        )

        dest = self._assemble(package)

        self.assertTrue((dest / "wai" / "hello.wai").is_file())
        self.assertTrue((dest / "wai" / "types.wai").is_file())

    def test_previous_bundle_is_replaced(self) -> None:
        self.dest.mkdir(parents=True)
        (self.dest / "stale.txt").write_text("old", encoding="utf-8")

        dest = self._assemble(self._package())

        self.assertFalse((dest / "stale.txt").exists())

    def test_missing_readme(self) -> None:
        with self.assertRaises(BundleIOError) as ctx:
            self._assemble(self._package(readme="README.md"))

        self.assertEqual(ctx.exception.path, self.crate / "README.md")

    def test_bindings_outside_the_crate(self) -> None:
        (self.root / "shared.wit").write_text("", encoding="utf-8")
        package = self._package(
            wasmer={
                "namespace": "wasmer",
                "abi": "wasi",
                "bindings": {"wit-bindgen": "0.1.0", "wit-exports": "../shared.wit"},
            }
        )

        with self.assertRaises(PathEscapesBaseDirectory):
            self._assemble(package)

        self.assertFalse((self.dest / "shared.wit").exists())
        self.assertFalse((self.dest.parent / "shared.wit").exists())

    def test_every_transitive_include_is_copied(self) -> None:
        (self.crate / "wai" / "common").mkdir(parents=True)
        (self.crate / "wai" / "hello.wai").write_text(
            "use { error } from types\nuse * from shared\n",
            encoding="utf-8",
        )
        (self.crate / "wai" / "types.wai").write_text("enum error { bad }\n", encoding="utf-8")
        (self.crate / "wai" / "shared.wai").write_text("record point { x: u32 }\n", encoding="utf-8")
        (self.crate / "wai" / "common" / "unused.wai").write_text("", encoding="utf-8")
        package = self._package(
            wasmer={
                "namespace": "wasmer",
                "abi": "wasi",
                "bindings": {"wai-version": "0.2.0", "exports": "wai/hello.wai"},
            }
        )

        dest = self._assemble(package)

        copied = sorted(path.relative_to(dest).as_posix() for path in dest.rglob("*.wai"))
        self.assertEqual(copied, ["wai/hello.wai", "wai/shared.wai", "wai/types.wai"])
        self.assertEqual(
            (dest / "wai" / "types.wai").read_text(encoding="utf-8"),
            "enum error { bad }\n",
        )


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
