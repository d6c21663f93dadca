# ==============================================================================
# SIM STOCK - Back-office de venta de SIM (mayorista / minorista)
# ==============================================================================
# Inventario de lotes, órdenes de venta, libro de caja, CRM de clientes y
# reportes. Todo el estado "actual" (stock, costos, deudas, scoring) se
# DERIVA bajo demanda desde los registros planos; no existe columna de
# stock ni de saldo en ningún lado.
# ==============================================================================

__version__ = '1.0.0'
