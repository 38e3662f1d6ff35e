"""
Pipeline de sincronización one-way: ERP legacy (SQL) -> Firestore.

Objetivos de diseño:
- Idempotencia: se puede ejecutar N veces sin duplicar documentos
  (merge-upsert por id derivado de la fila).
- Incremental: cursor por PK (o offset para tablas sin PK), con checkpoint
  por tabla guardado después de cada chunk escrito.
- Reanudable: un fallo deja el checkpoint en el último chunk confirmado.
- Esquema libre: columnas nuevas en el ERP pasan al documento sin cambios.
"""
