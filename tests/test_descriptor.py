from __future__ import annotations

from pathlib import Path
import tempfile
import textwrap
import tomllib
import unittest

from wasmer_pack.descriptor import (
    Abi,
    Command,
    Descriptor,
    Module,
    PackageInfo,
    WaiBindings,
    WitBindings,
    parse_bindings,
)


def _full_descriptor() -> Descriptor:
    return Descriptor(
        package=PackageInfo(
            name="wasmer/hello",
            version="1.2.3",
            description="Say hello",
            license="MIT",
            license_file="LICENSE-MIT",
            readme="README.md",
            repository="https://github.com/wasmerio/hello",
            homepage="https://wasmer.io",
            wasmer_extra_flags="--enable-threads",
        ),
        modules=[
            Module(
                name="hello",
                source="hello.wasm",
                abi=Abi.WASI,
                bindings=WaiBindings(wai_version="0.2.0", exports="hello.wai", imports=["env.wai"]),
            )
        ],
        commands=[Command(name="hello", module="hello", package="wasmer/hello")],
        fs={"/data": "assets", "/etc": "config"},
    )


class DescriptorRoundTripTests(unittest.TestCase):
    def test_round_trip_preserves_every_field(self) -> None:
        descriptor = _full_descriptor()

        parsed = Descriptor.loads(descriptor.dumps())

        self.assertEqual(parsed, descriptor)

    def test_round_trip_with_wit_bindings_and_no_optionals(self) -> None:
        descriptor = Descriptor(
            package=PackageInfo(name="ns/lib", version="0.1.0", description="A library"),
            modules=[
                Module(
                    name="my-lib",
                    source="my_lib.wasm",
                    abi=Abi.NONE,
                    bindings=WitBindings(wit_bindgen="0.1.0", wit_exports="wit/exports.wit"),
                )
            ],
        )

        parsed = Descriptor.loads(descriptor.dumps())

        self.assertEqual(parsed, descriptor)
        self.assertEqual(parsed.commands, [])
        self.assertEqual(parsed.fs, {})

    def test_unset_optional_fields_are_omitted(self) -> None:
        descriptor = Descriptor(
            package=PackageInfo(name="ns/lib", version="0.1.0", description="A library"),
            modules=[Module(name="lib", source="lib.wasm", abi=Abi.EMSCRIPTEN)],
        )

        data = tomllib.loads(descriptor.dumps())

        self.assertEqual(set(data), {"package", "module"})
        self.assertEqual(data["package"], {"name": "ns/lib", "version": "0.1.0", "description": "A library"})
        self.assertEqual(data["module"], [{"name": "lib", "source": "lib.wasm", "abi": "emscripten"}])

    def test_serialized_keys_are_kebab_case(self) -> None:
        data = tomllib.loads(_full_descriptor().dumps())

        self.assertEqual(data["package"]["license-file"], "LICENSE-MIT")
        self.assertEqual(data["package"]["wasmer-extra-flags"], "--enable-threads")
        self.assertEqual(data["module"][0]["bindings"]["wai-version"], "0.2.0")
        self.assertEqual(data["command"][0]["package"], "wasmer/hello")

    def test_read_from_disk(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "wasmer.toml"
            path.write_text(
                textwrap.dedent(
                    """
                    [package]
                    name = "wasmer/cli"
                    version = "0.3.0"
                    description = "CLI"

                    [[module]]
                    name = "cli"
                    source = "cli.wasm"
                    abi = "wasi"

                    [[command]]
                    name = "cli"
                    module = "cli"
                    package = "wasmer/cli"
                    """
                ),
                encoding="utf-8",
            )

            descriptor = Descriptor.read(path)

        self.assertEqual(descriptor.package.name, "wasmer/cli")
        self.assertEqual(descriptor.modules[0].abi, Abi.WASI)
        self.assertEqual(descriptor.commands[0].module, "cli")


class DescriptorValidationTests(unittest.TestCase):
    def test_missing_package_table_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Descriptor.from_mapping({"module": []})

    def test_missing_required_package_field(self) -> None:
        with self.assertRaisesRegex(ValueError, "package.description is required"):
            Descriptor.from_mapping({"package": {"name": "a/b", "version": "1.0.0"}})

    def test_unknown_module_key(self) -> None:
        with self.assertRaisesRegex(ValueError, "unknown keys: kind"):
            Module.from_mapping({"name": "m", "source": "m.wasm", "abi": "wasi", "kind": "x"})

    def test_unknown_abi(self) -> None:
        with self.assertRaisesRegex(ValueError, "unknown abi 'wasm4'"):
            Abi.parse("wasm4")

    def test_abi_names_are_matched_exactly(self) -> None:
        for value in ("WASI", " wasi", "Emscripten"):
            with self.subTest(value=value), self.assertRaisesRegex(ValueError, "unknown abi"):
                Abi.parse(value)

    def test_module_abi_is_required(self) -> None:
        with self.assertRaisesRegex(ValueError, "module.abi is required"):
            Module.from_mapping({"name": "m", "source": "m.wasm"})


class BindingsParsingTests(unittest.TestCase):
    def test_wai_bindings(self) -> None:
        bindings = parse_bindings({"wai-version": "0.1.0", "exports": "hello-world.wai"})

        self.assertEqual(bindings, WaiBindings(wai_version="0.1.0", exports="hello-world.wai", imports=[]))

    def test_wit_bindings(self) -> None:
        bindings = parse_bindings({"wit-bindgen": "0.1.0", "wit-exports": "hello-world.wit"})

        self.assertEqual(bindings, WitBindings(wit_bindgen="0.1.0", wit_exports="hello-world.wit"))

    def test_wit_exports_alias(self) -> None:
        bindings = parse_bindings({"wit-bindgen": "0.1.0", "exports": "hello-world.wit"})

        self.assertEqual(bindings.entry_points(), ["hello-world.wit"])

    def test_unrecognised_flavour(self) -> None:
        with self.assertRaisesRegex(ValueError, "either 'wai-version' or 'wit-bindgen'"):
            parse_bindings({"exports": "hello.wai"})

    def test_wai_imports_must_be_strings(self) -> None:
        with self.assertRaises(TypeError):
            parse_bindings({"wai-version": "0.1.0", "imports": [1, 2]})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
