"""End-to-end conversion pipeline."""

from schemaforge.pipeline.converter import ConversionResult, Converter
