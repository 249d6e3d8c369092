"""
Farm database schema.

Defines table names and DDL statements for every cuyfarm table.  The DDL
is written once with a ``{pk}`` token for auto-increment primary keys so
the same statements run on SQLite and PostgreSQL.

Table Registry (TABLES):
    ::

        galpones               sheds
        jaulas                 cages (per shed)
        cuyes                  animals
        prenez                 pregnancies
        camadas                litters
        historial_salud        health records
        proveedores            feed suppliers
        alimentos              feed inventory
        consumo_alimentos      feed consumption
        clientes               customers
        ventas / venta_detalles  sales and their lines
        gastos                 expenses
        alertas                generated alerts
        notification_channels  delivery channels
        notification_deliveries  per-channel delivery attempts
        export_jobs / export_files  report exports

Examples:
    >>> from cuyfarm.core.schema import TABLES, create_tables
    >>> TABLES["cuyes"]
    'cuyes'
    >>> create_tables(conn)
"""

from __future__ import annotations

from typing import Any

TABLES = {
    "galpones": "galpones",
    "jaulas": "jaulas",
    "cuyes": "cuyes",
    "prenez": "prenez",
    "camadas": "camadas",
    "salud": "historial_salud",
    "proveedores": "proveedores",
    "alimentos": "alimentos",
    "consumo": "consumo_alimentos",
    "clientes": "clientes",
    "ventas": "ventas",
    "venta_detalles": "venta_detalles",
    "gastos": "gastos",
    "alertas": "alertas",
    "channels": "notification_channels",
    "deliveries": "notification_deliveries",
    "export_jobs": "export_jobs",
    "export_files": "export_files",
}

_PK = {
    "sqlite": "INTEGER PRIMARY KEY AUTOINCREMENT",
    "postgresql": "SERIAL PRIMARY KEY",
}

# Order matters: parents before children.
DDL: dict[str, str] = {
    "galpones": """
        CREATE TABLE IF NOT EXISTS galpones (
            id {pk},
            nombre TEXT NOT NULL UNIQUE,
            descripcion TEXT,
            ubicacion TEXT,
            capacidad_maxima INTEGER NOT NULL DEFAULT 50,
            estado TEXT NOT NULL DEFAULT 'Activo',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "jaulas": """
        CREATE TABLE IF NOT EXISTS jaulas (
            id {pk},
            nombre TEXT NOT NULL,
            galpon_id INTEGER NOT NULL REFERENCES galpones(id),
            galpon_nombre TEXT NOT NULL,
            descripcion TEXT,
            capacidad_maxima INTEGER NOT NULL DEFAULT 10,
            tipo TEXT NOT NULL DEFAULT 'Estándar',
            estado TEXT NOT NULL DEFAULT 'Activo',
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            UNIQUE (galpon_nombre, nombre)
        )
    """,
    "cuyes": """
        CREATE TABLE IF NOT EXISTS cuyes (
            id {pk},
            raza TEXT NOT NULL,
            fecha_nacimiento TEXT NOT NULL,
            sexo TEXT NOT NULL,
            peso REAL NOT NULL,
            galpon TEXT NOT NULL,
            jaula TEXT NOT NULL,
            estado TEXT NOT NULL DEFAULT 'Activo',
            etapa_vida TEXT NOT NULL,
            proposito TEXT NOT NULL DEFAULT 'Indefinido',
            fecha_venta TEXT,
            fecha_fallecimiento TEXT,
            camada_id INTEGER,
            notas TEXT,
            ultima_evaluacion TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "prenez": """
        CREATE TABLE IF NOT EXISTS prenez (
            id {pk},
            madre_id INTEGER NOT NULL REFERENCES cuyes(id),
            padre_id INTEGER REFERENCES cuyes(id),
            fecha_prenez TEXT NOT NULL,
            fecha_probable_parto TEXT NOT NULL,
            estado TEXT NOT NULL DEFAULT 'activa',
            notas TEXT,
            fecha_completada TEXT,
            camada_id INTEGER,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "camadas": """
        CREATE TABLE IF NOT EXISTS camadas (
            id {pk},
            fecha_nacimiento TEXT NOT NULL,
            num_vivos INTEGER NOT NULL,
            num_muertos INTEGER NOT NULL DEFAULT 0,
            num_machos INTEGER NOT NULL DEFAULT 0,
            num_hembras INTEGER NOT NULL DEFAULT 0,
            madre_id INTEGER REFERENCES cuyes(id),
            padre_id INTEGER REFERENCES cuyes(id),
            prenez_id INTEGER REFERENCES prenez(id),
            created_at TEXT NOT NULL
        )
    """,
    "historial_salud": """
        CREATE TABLE IF NOT EXISTS historial_salud (
            id {pk},
            cuy_id INTEGER NOT NULL REFERENCES cuyes(id) ON DELETE CASCADE,
            fecha TEXT NOT NULL,
            tipo TEXT NOT NULL,
            veterinario TEXT,
            descripcion TEXT NOT NULL,
            tratamiento TEXT,
            costo REAL NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        )
    """,
    "proveedores": """
        CREATE TABLE IF NOT EXISTS proveedores (
            id {pk},
            nombre TEXT NOT NULL UNIQUE,
            contacto TEXT,
            telefono TEXT,
            direccion TEXT,
            created_at TEXT NOT NULL
        )
    """,
    "alimentos": """
        CREATE TABLE IF NOT EXISTS alimentos (
            id {pk},
            nombre TEXT NOT NULL,
            descripcion TEXT,
            unidad TEXT NOT NULL,
            stock REAL NOT NULL DEFAULT 0,
            costo_unitario REAL NOT NULL DEFAULT 0,
            proveedor_id INTEGER REFERENCES proveedores(id),
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "consumo_alimentos": """
        CREATE TABLE IF NOT EXISTS consumo_alimentos (
            id {pk},
            galpon TEXT NOT NULL,
            fecha TEXT NOT NULL,
            alimento_id INTEGER NOT NULL REFERENCES alimentos(id),
            cantidad REAL NOT NULL,
            created_at TEXT NOT NULL
        )
    """,
    "clientes": """
        CREATE TABLE IF NOT EXISTS clientes (
            id {pk},
            nombre TEXT NOT NULL,
            contacto TEXT,
            telefono TEXT,
            direccion TEXT,
            created_at TEXT NOT NULL
        )
    """,
    "ventas": """
        CREATE TABLE IF NOT EXISTS ventas (
            id {pk},
            cliente_id INTEGER NOT NULL REFERENCES clientes(id),
            fecha TEXT NOT NULL,
            total REAL NOT NULL DEFAULT 0,
            estado_pago TEXT NOT NULL DEFAULT 'Pendiente',
            created_at TEXT NOT NULL
        )
    """,
    "venta_detalles": """
        CREATE TABLE IF NOT EXISTS venta_detalles (
            id {pk},
            venta_id INTEGER NOT NULL REFERENCES ventas(id) ON DELETE CASCADE,
            cuy_id INTEGER NOT NULL REFERENCES cuyes(id),
            peso REAL NOT NULL,
            precio_unitario REAL NOT NULL
        )
    """,
    "gastos": """
        CREATE TABLE IF NOT EXISTS gastos (
            id {pk},
            descripcion TEXT NOT NULL,
            monto REAL NOT NULL,
            fecha TEXT NOT NULL,
            categoria TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """,
    "alertas": """
        CREATE TABLE IF NOT EXISTS alertas (
            id TEXT PRIMARY KEY,
            type TEXT NOT NULL,
            severity TEXT NOT NULL,
            title TEXT NOT NULL,
            message TEXT NOT NULL,
            data_json TEXT,
            created_at TEXT NOT NULL,
            read_at TEXT,
            action_taken TEXT,
            user_id TEXT,
            related_entity_id TEXT,
            related_entity_type TEXT
        )
    """,
    "notification_channels": """
        CREATE TABLE IF NOT EXISTS notification_channels (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            type TEXT NOT NULL,
            config_json TEXT,
            enabled INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """,
    "notification_deliveries": """
        CREATE TABLE IF NOT EXISTS notification_deliveries (
            id TEXT PRIMARY KEY,
            alert_id TEXT NOT NULL REFERENCES alertas(id) ON DELETE CASCADE,
            channel_id TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending',
            attempts INTEGER NOT NULL DEFAULT 0,
            last_attempt_at TEXT,
            delivered_at TEXT,
            error TEXT,
            created_at TEXT NOT NULL
        )
    """,
    "export_jobs": """
        CREATE TABLE IF NOT EXISTS export_jobs (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            template_id TEXT NOT NULL,
            format TEXT NOT NULL,
            parameters_json TEXT,
            options_json TEXT,
            status TEXT NOT NULL DEFAULT 'PENDING',
            progress INTEGER NOT NULL DEFAULT 0,
            error_message TEXT,
            created_at TEXT NOT NULL,
            started_at TEXT,
            completed_at TEXT,
            expires_at TEXT NOT NULL
        )
    """,
    "export_files": """
        CREATE TABLE IF NOT EXISTS export_files (
            id TEXT PRIMARY KEY,
            job_id TEXT NOT NULL REFERENCES export_jobs(id) ON DELETE CASCADE,
            file_name TEXT NOT NULL,
            file_path TEXT NOT NULL,
            file_size INTEGER NOT NULL,
            mime_type TEXT NOT NULL,
            checksum TEXT NOT NULL,
            download_count INTEGER NOT NULL DEFAULT 0,
            last_downloaded_at TEXT,
            created_at TEXT NOT NULL
        )
    """,
}

INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_cuyes_ubicacion ON cuyes (galpon, jaula)",
    "CREATE INDEX IF NOT EXISTS idx_cuyes_estado ON cuyes (estado)",
    "CREATE INDEX IF NOT EXISTS idx_cuyes_camada ON cuyes (camada_id)",
    "CREATE INDEX IF NOT EXISTS idx_prenez_estado ON prenez (estado)",
    "CREATE INDEX IF NOT EXISTS idx_prenez_madre ON prenez (madre_id)",
    "CREATE INDEX IF NOT EXISTS idx_salud_cuy ON historial_salud (cuy_id)",
    "CREATE INDEX IF NOT EXISTS idx_ventas_fecha ON ventas (fecha)",
    "CREATE INDEX IF NOT EXISTS idx_gastos_fecha ON gastos (fecha)",
    "CREATE INDEX IF NOT EXISTS idx_alertas_created ON alertas (created_at)",
    "CREATE INDEX IF NOT EXISTS idx_alertas_entity ON alertas (type, related_entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_deliveries_status ON notification_deliveries (status)",
    "CREATE INDEX IF NOT EXISTS idx_export_jobs_user ON export_jobs (user_id, created_at)",
]


def render_ddl(backend: str = "sqlite") -> list[str]:
    """Return the DDL statements for *backend*, tables first then indexes."""
    pk = _PK.get(backend, _PK["sqlite"])
    return [ddl.format(pk=pk) for ddl in DDL.values()] + list(INDEXES)


def create_tables(conn: Any, backend: str = "sqlite") -> list[str]:
    """Create all farm tables.

    Safe to call multiple times (CREATE IF NOT EXISTS).  Returns the
    names of the tables that were ensured.
    """
    for statement in render_ddl(backend):
        conn.execute(statement)
    conn.commit()
    return list(DDL.keys())
