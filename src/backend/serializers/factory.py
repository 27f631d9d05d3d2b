"""
Serializer Factory with decorator-based registration.

Serializers register themselves with the @SerializerFactory.register
decorator when their module is imported.

Usage:
    from backend.serializers import SerializerFactory, OutputFormat

    serializer = SerializerFactory.create(OutputFormat.XLSX)
    output = serializer.serialize(rows, "report.xlsx")
"""

from typing import Optional, Type

from .base import FormatSerializer, OutputFormat, SerializerConfig


class SerializerFactory:
    """Registry of result serializers keyed by output format."""

    _registry: dict[OutputFormat, Type[FormatSerializer]] = {}

    @classmethod
    def register(cls, format_type: OutputFormat):
        """
        Decorator to register a serializer class for a format.

        Args:
            format_type: The output format this serializer handles

        Returns:
            Decorator function
        """
        def decorator(serializer_class: Type[FormatSerializer]) -> Type[FormatSerializer]:
            if format_type in cls._registry:
                existing = cls._registry[format_type].__name__
                raise ValueError(
                    f"Format {format_type.value} already registered by {existing}"
                )
            cls._registry[format_type] = serializer_class
            return serializer_class
        return decorator

    @classmethod
    def create(
        cls,
        format_type: OutputFormat,
        config: Optional[SerializerConfig] = None
    ) -> FormatSerializer:
        """
        Create a serializer for the specified format.

        Raises:
            ValueError: If format is not registered
        """
        if format_type not in cls._registry:
            available = [f.value for f in cls._registry.keys()]
            raise ValueError(
                f"Unknown format: {format_type.value}. "
                f"Available: {available}"
            )
        return cls._registry[format_type](config or SerializerConfig())

    @classmethod
    def parse_format(cls, value: Optional[str]) -> OutputFormat:
        """
        Resolve a caller-supplied format name; blank means xlsx.

        Raises:
            ValueError: If the name is not a registered format
        """
        name = (value or OutputFormat.XLSX.value).strip().lower().lstrip(".")
        try:
            format_type = OutputFormat(name)
        except ValueError:
            format_type = None
        if format_type is None or format_type not in cls._registry:
            available = sorted(f.value for f in cls._registry.keys())
            raise ValueError(f"Invalid output format: '{value}'. Available: {available}")
        return format_type

    @classmethod
    def get_available_formats(cls) -> list[OutputFormat]:
        """Get list of registered output formats."""
        return list(cls._registry.keys())
