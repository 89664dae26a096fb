"""
Unit tests for the import CSV template.
"""

from services.import_template_service import build_import_template, TEMPLATE_FILENAME
from services.column_mapping_service import auto_map, validate_mapping
from services.import_validation_service import validate_data
from parsers.csv_parser import parse_csv_text


def test_template_layout():
    lines = build_import_template().split("\n")

    assert lines[0] == "name,email,role,phone,isActive,grade"
    assert lines[1] == "Juan Pérez,juan.perez@ejemplo.com,student,+1234567890,true,10° Grado"
    assert len(lines) == 4
    assert TEMPLATE_FILENAME == "plantilla_usuarios.csv"


def test_template_imports_cleanly():
    """The template passes auto-mapping and both validators unchanged."""
    document = parse_csv_text(build_import_template())
    mapping = auto_map(document.headers)

    assert document.row_count == 3
    assert validate_mapping(mapping) == []
    assert validate_data(document, mapping) == []
