from __future__ import annotations

from pathlib import Path
import unittest

from wasmer_pack.errors import AmbiguousTarget, NoPackageableTarget
from wasmer_pack.metadata import Package, Target
from wasmer_pack.targets import artifact_filename, artifact_stem, determine_target

from workspace_fixtures import package_entry, target_entry


def _package(*targets) -> Package:
    return Package.from_mapping(package_entry("demo", Path("/ws/demo"), targets=list(targets)))


class DetermineTargetTests(unittest.TestCase):
    def test_single_binary(self) -> None:
        target = determine_target(_package(target_entry("demo", "bin")))

        self.assertEqual(target.name, "demo")
        self.assertTrue(target.is_binary)

    def test_library_targets_are_ignored_unless_cdylib(self) -> None:
        target = determine_target(
            _package(
                target_entry("demo", "rlib"),
                target_entry("demo-ffi", "cdylib"),
                target_entry("bench", "bench"),
            )
        )

        self.assertEqual(target.name, "demo-ffi")
        self.assertFalse(target.is_binary)

    def test_no_candidates(self) -> None:
        with self.assertRaises(NoPackageableTarget) as ctx:
            determine_target(_package(target_entry("demo", "lib")))

        self.assertIn("demo", str(ctx.exception))
        self.assertIn("cdylib", str(ctx.exception))

    def test_several_candidates_are_listed(self) -> None:
        with self.assertRaises(AmbiguousTarget) as ctx:
            determine_target(_package(target_entry("first", "bin"), target_entry("second", "cdylib", "rlib")))

        self.assertEqual(
            ctx.exception.candidates,
            [("first", ("bin",)), ("second", ("cdylib", "rlib"))],
        )
        self.assertIn("first (bin), second (cdylib, rlib)", str(ctx.exception))


class ArtifactNameTests(unittest.TestCase):
    def test_binary_keeps_dashes(self) -> None:
        target = Target(name="hello-world", kinds=("bin",))

        self.assertEqual(artifact_stem(target), "hello-world")
        self.assertEqual(artifact_filename(target), "hello-world.wasm")

    def test_library_uses_underscores(self) -> None:
        target = Target(name="hello-world", kinds=("cdylib",))

        self.assertEqual(artifact_filename(target), "hello_world.wasm")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
