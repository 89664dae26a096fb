"""
Downloadable CSV template for user imports.
"""

TEMPLATE_FILENAME = "plantilla_usuarios.csv"

TEMPLATE_HEADERS = ["name", "email", "role", "phone", "isActive", "grade"]

TEMPLATE_SAMPLE_ROWS = [
    "Juan Pérez,juan.perez@ejemplo.com,student,+1234567890,true,10° Grado",
    "María García,maria.garcia@ejemplo.com,teacher,+1234567891,true,",
    "Ana López,ana.lopez@ejemplo.com,parent,+1234567892,true,",
]


def build_import_template() -> str:
    """Header line plus three sample users, newline-separated."""
    return "\n".join([",".join(TEMPLATE_HEADERS), *TEMPLATE_SAMPLE_ROWS])
