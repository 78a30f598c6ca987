from __future__ import annotations

from pathlib import Path

import pytest

pytest.importorskip("google.protobuf")

from google.protobuf import descriptor_pb2

from protoroute.config import (
    GeneratorConfig,
    RouteConfig,
    parse_flag_map,
    parse_flags,
    split_flag,
    split_module_path,
)
from protoroute.errors import FlagFormatError
from protoroute.model import ModuleId


def test_split_flag_uses_first_separator_only() -> None:
    assert split_flag(".a.b.M=#[serde(rename = \"x\")]") == (".a.b.M", '#[serde(rename = "x")]')
    assert split_flag("key=") == ("key", "")


def test_split_flag_requires_separator() -> None:
    with pytest.raises(FlagFormatError, match="novalue"):
        split_flag("novalue", "--output-map")


def test_parse_flags_preserves_order_and_repeats() -> None:
    pairs = parse_flags([".a=one", ".b=two", ".a=three"])

    assert pairs == [(".a", "one"), (".b", "two"), (".a", "three")]
    assert parse_flag_map([".a=one", ".a=three"]) == {".a": "three"}
    assert parse_flags(None) == []


def test_split_module_path() -> None:
    assert split_module_path("a::b::c") == ("a", "b", "c")
    assert split_module_path("a.b") == ("a", "b")
    assert split_module_path("single") == ("single",)


def test_generator_config_from_flags() -> None:
    config = GeneratorConfig.from_flags(
        extern_path=[".google.protobuf=::pbjson_types"],
        field_attribute=[".a.M.f=#[serde(default)]"],
        type_attribute=[".a=#[derive(Hash)]"],
        message_attribute=[".a.M=#[derive(Eq)]"],
        enum_attribute=[".a.E=#[derive(Ord)]"],
        client_attribute=[".a.S=#[allow(dead_code)]"],
        server_attribute=[".a.S=#[allow(unused)]"],
    )

    assert config.extern_paths == [(".google.protobuf", "::pbjson_types")]
    assert list(config.iter_parameters()) == [
        ("extern_path", ".google.protobuf", "::pbjson_types"),
        ("field_attribute", ".a.M.f", "#[serde(default)]"),
        ("type_attribute", ".a", "#[derive(Hash)]"),
        ("message_attribute", ".a.M", "#[derive(Eq)]"),
        ("enum_attribute", ".a.E", "#[derive(Ord)]"),
        ("client_attribute", ".a.S", "#[allow(dead_code)]"),
        ("server_attribute", ".a.S", "#[allow(unused)]"),
    ]


def test_generator_config_rejects_malformed_attribute() -> None:
    with pytest.raises(FlagFormatError, match="--type-attribute"):
        GeneratorConfig.from_flags(type_attribute=["missing-separator"])


def test_add_reflection_decorates_every_message() -> None:
    file_proto = descriptor_pb2.FileDescriptorProto()
    file_proto.name = "shop.proto"
    file_proto.package = "shop"
    order = file_proto.message_type.add()
    order.name = "Order"
    line = order.nested_type.add()
    line.name = "Line"

    config = GeneratorConfig()
    count = config.add_reflection([file_proto], "crate::PROTO_DEF")

    assert count == 2
    assert config.type_attributes == [
        ("shop.Order", "#[derive(::prost_reflect::ReflectMessage)]"),
        ("shop.Order", '#[prost_reflect(message_name = "shop.Order")]'),
        ("shop.Order", '#[prost_reflect(file_descriptor_set_bytes = "crate::PROTO_DEF")]'),
        ("shop.Order.Line", "#[derive(::prost_reflect::ReflectMessage)]"),
        ("shop.Order.Line", '#[prost_reflect(message_name = "shop.Order.Line")]'),
        ("shop.Order.Line", '#[prost_reflect(file_descriptor_set_bytes = "crate::PROTO_DEF")]'),
    ]


def test_route_config_from_flags() -> None:
    config = RouteConfig.from_flags(
        output="out/all.rs",
        output_map=["a/a.proto=out/a.rs"],
        module_output_map=["b::v1=out/b.rs", "c.v2=out/c.rs"],
        module_in_file=["a/a.proto=api::a", "b::v1=outer"],
        create_directory=True,
    )

    assert config.output == Path("out/all.rs")
    assert config.output_map == {"a/a.proto": Path("out/a.rs")}
    assert config.module_output_map == {
        ModuleId(("b", "v1")): Path("out/b.rs"),
        ModuleId(("c", "v2")): Path("out/c.rs"),
    }
    assert config.module_in_file == {"a/a.proto": ("api", "a"), "b::v1": ("outer",)}
    assert config.create_directory is True


def test_route_config_wrap_lookup_prefers_source_path() -> None:
    config = RouteConfig.from_flags(
        module_in_file=["a/a.proto=by_path", "a.pkg=by_module", "b.proto=ignored"],
    )

    assert config.wrap_for("a/a.proto", ModuleId(("a", "pkg"))) == ("by_path",)
    assert config.wrap_for("other.proto", ModuleId(("a", "pkg"))) == ("by_module",)
    assert config.wrap_for("other.proto", ModuleId(("b", "proto"))) == ()
    assert config.wrap_for(None, ModuleId(("x",))) == ()


def test_route_config_rejects_malformed_route() -> None:
    with pytest.raises(FlagFormatError):
        RouteConfig.from_flags(output_map=["novalue"])


def test_route_config_repeated_output_map_last_wins() -> None:
    config = RouteConfig.from_flags(output_map=["a.proto=first.rs", "a.proto=second.rs"])

    assert config.output_map == {"a.proto": Path("second.rs")}
