"""Generators — Go structs, Protobuf messages and config documents."""
