"""Repositories for cuyfarm tables.

Each repository class extends :class:`BaseRepository` and provides CRUD
plus the aggregate queries for one part of the farm.  Operations in
``cuyfarm.ops`` use these repositories instead of inline raw SQL.

Architecture::

    ┌────────────────────────────────────────────────────────────────┐
    │  ops/cuyes.py,  ops/reproduccion.py,  ops/alerts.py  ...       │
    │  (operation functions : business orchestration)                │
    └────────────────────────────┬───────────────────────────────────┘
                                 │ uses
                                 ▼
    ┌────────────────────────────────────────────────────────────────┐
    │  cuyfarm.core.repositories  (this package)                     │
    │                                                                │
    │  cuyes.py         : CuyRepository                              │
    │  galpones.py      : GalponRepository, JaulaRepository          │
    │  reproduccion.py  : PrenezRepository, CamadaRepository         │
    │  registros.py     : Salud, Proveedor, Alimento, Consumo,       │
    │                     Cliente, Venta, Gasto repositories         │
    │  alerts.py        : AlertRepository, ChannelRepository,        │
    │                     DeliveryRepository                         │
    │  exports.py       : ExportJobRepository, ExportFileRepository  │
    └────────────────────────────────────────────────────────────────┘

Tags:
    repository, sql, data-access, crud
"""

from cuyfarm.core.repositories.alerts import (
    AlertRepository,
    ChannelRepository,
    DeliveryRepository,
)
from cuyfarm.core.repositories.cuyes import CuyRepository
from cuyfarm.core.repositories.exports import ExportFileRepository, ExportJobRepository
from cuyfarm.core.repositories.galpones import GalponRepository, JaulaRepository
from cuyfarm.core.repositories.registros import (
    AlimentoRepository,
    ClienteRepository,
    ConsumoRepository,
    GastoRepository,
    ProveedorRepository,
    SaludRepository,
    VentaRepository,
)
from cuyfarm.core.repositories.reproduccion import CamadaRepository, PrenezRepository

__all__ = [
    "AlertRepository",
    "AlimentoRepository",
    "CamadaRepository",
    "ChannelRepository",
    "ClienteRepository",
    "ConsumoRepository",
    "CuyRepository",
    "DeliveryRepository",
    "ExportFileRepository",
    "ExportJobRepository",
    "GalponRepository",
    "GastoRepository",
    "JaulaRepository",
    "PrenezRepository",
    "ProveedorRepository",
    "SaludRepository",
    "VentaRepository",
]
