# ==============================================================================
# SERVICIO DE ESTADÍSTICAS Y PANEL DE CONTROL
# ==============================================================================
# Encadena los tres agregadores y arma los reportes:
#
#   DataSet → inventario → órdenes → clientes  (compute_all)
#
# REGLA PRINCIPAL: nada de lo que se calcula aquí se persiste. Todo se
# recalcula desde cero con cada cambio, para datos nuevos e importados por
# igual.
#
# Saldos (cuentas por cobrar/pagar, inventario) son fotos del estado actual;
# ingresos y ganancias se filtran por el período elegido.
# ==============================================================================

import calendar
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from sim_stock.config import (
    AGING_INVENTORY_DAYS,
    DASHBOARD_LOW_STOCK_THRESHOLD,
    DEBT_DUE_SOON_ALERT_AMOUNT,
    DEBT_DUE_SOON_DAYS,
    SLOW_INVENTORY_STOCK,
    SUPPLIER_PAYABLE_ALERT_AMOUNT,
    TOP_DEBTORS_LIMIT,
)
from sim_stock.models.entities import DataSet, SaleType, Transaction, TransactionType
from sim_stock.models.stats import (
    CustomerWithStats,
    DebtLevel,
    DerivedStats,
    InventoryProductStat,
    SaleOrderWithStats,
)
from sim_stock.services.customer_service import compute_customer_stats
from sim_stock.services.inventory_service import compute_inventory_stats
from sim_stock.services.payment_service import filter_by_date
from sim_stock.services.sales_service import compute_order_stats


def compute_all(dataset: DataSet, now: datetime = None) -> DerivedStats:
    """
    Cadena completa de derivación sobre una foto de la cuenta.

    Args:
        dataset: Datos de la cuenta (contexto explícito)
        now: Momento de referencia para niveles de deuda
    """
    inventory = compute_inventory_stats(
        dataset.sim_types, dataset.packages, dataset.orders, dataset.transactions
    )
    orders = compute_order_stats(
        dataset.orders, inventory, dataset.transactions, dataset.customers, now
    )
    customers = compute_customer_stats(dataset.customers, orders)
    return DerivedStats(inventory=inventory, orders=orders, customers=customers)


def _iso(day: date) -> str:
    return day.strftime('%Y-%m-%d')


def format_vnd(amount: float) -> str:
    """1234567 → '1.234.567 đ'"""
    return f"{amount:,.0f}".replace(',', '.') + ' đ'


def format_day(iso_date: Optional[str]) -> str:
    """'2024-05-10' → '10/05/2024'"""
    if not iso_date:
        return ''
    try:
        return datetime.strptime(iso_date[:10], '%Y-%m-%d').strftime('%d/%m/%Y')
    except ValueError:
        return iso_date


class StatsService:
    """
    Servicio de reportes.

    Responsabilidades:
    - Rango de fechas por período
    - Panel de control (KPIs + decisiones)
    - Listado de órdenes por canal y fechas
    - Ventas del día y serie diaria de facturación
    - Posición financiera, deudores principales, inventario lento
    - Calendario mensual y mensaje de cobranza
    """

    def __init__(self, snapshot_loader: Callable[[str], DataSet] = None):
        """
        Args:
            snapshot_loader: Función cuenta → DataSet. Permite inyectar la
                             fuente (sync en memoria, store, tests).
        """
        self._snapshot_loader = snapshot_loader

    def set_snapshot_loader(self, loader: Callable[[str], DataSet]) -> None:
        self._snapshot_loader = loader

    def derive(self, account_id: str, now: datetime = None) -> Tuple[DataSet, DerivedStats]:
        """Foto actual de la cuenta y sus estadísticas."""
        dataset = self._snapshot_loader(account_id) if self._snapshot_loader else DataSet()
        return dataset, compute_all(dataset, now)

    # =========================================================================
    # PERÍODOS
    # =========================================================================

    def period_range(
        self,
        period: str = 'month',
        custom_start: str = None,
        custom_end: str = None,
        today: date = None,
    ) -> Tuple[str, str]:
        """
        Rango ISO (inicio, fin) inclusive.

        Args:
            period: 'today', 'week', 'month', 'custom'
        """
        today = today or date.today()

        if period == 'today':
            return _iso(today), _iso(today)

        elif period == 'week':
            week_start = today - timedelta(days=today.weekday())
            return _iso(week_start), _iso(week_start + timedelta(days=6))

        elif period == 'custom' and custom_start and custom_end:
            try:
                start = datetime.strptime(custom_start, '%Y-%m-%d').date()
                end = datetime.strptime(custom_end, '%Y-%m-%d').date()
                return _iso(start), _iso(end)
            except ValueError:
                pass

        # Default: mes en curso
        last_day = calendar.monthrange(today.year, today.month)[1]
        return _iso(today.replace(day=1)), _iso(today.replace(day=last_day))

    # =========================================================================
    # PANEL DE CONTROL
    # =========================================================================

    def control_center(
        self,
        derived: DerivedStats,
        transactions: Iterable[Transaction],
        start: str,
        end: str,
        today: date = None,
    ) -> Dict[str, Any]:
        """
        KPIs del panel.

        Returns:
            {
                'working_capital': float,     # IN - OUT del período
                'total_receivable': float,    # por cobrar (actual)
                'total_payable': float,       # por pagar a proveedores (actual)
                'inventory_value': float,     # stock x costo promedio
                'gross_profit': float,        # ganancia de órdenes del período
                'net_revenue': float,         # facturación del período
                'total_sim_qty': int,
                'low_stock_count': int,
                'aging_inventory_count': int,
                'debt_due_soon_count': int,
                'debt_due_soon_amount': float,
            }
        """
        today = today or date.today()
        period_tx = filter_by_date(transactions, start, end)
        period_orders = [o for o in derived.orders if start <= o.date <= end]

        cash_in = sum(t.amount for t in period_tx if t.type == TransactionType.IN)
        cash_out = sum(t.amount for t in period_tx if t.type == TransactionType.OUT)

        aging_cutoff = _iso(today - timedelta(days=AGING_INVENTORY_DAYS))
        due_soon_limit = _iso(today + timedelta(days=DEBT_DUE_SOON_DAYS))
        due_soon = self.debts_due_by(derived.orders, due_soon_limit)

        return {
            'working_capital': cash_in - cash_out,
            'total_receivable': sum(o.remaining for o in derived.orders),
            'total_payable': sum(p.total_remaining_payable for p in derived.inventory),
            'inventory_value': self.inventory_value(derived.inventory),
            'gross_profit': sum(o.profit for o in period_orders),
            'net_revenue': sum(o.total_amount for o in period_orders),
            'total_sim_qty': sum(p.current_stock for p in derived.inventory),
            'low_stock_count': len(self.low_stock_products(derived.inventory)),
            'aging_inventory_count': sum(
                1 for p in derived.inventory
                if any(b.batch.import_date < aging_cutoff and b.stock > 0 for b in p.batches)
            ),
            'debt_due_soon_count': len(due_soon),
            'debt_due_soon_amount': sum(o.remaining for o in due_soon),
        }

    @staticmethod
    def inventory_value(inventory: Iterable[InventoryProductStat]) -> float:
        return sum(p.current_stock * p.weighted_avg_cost for p in inventory)

    @staticmethod
    def debts_due_by(order_stats: Iterable[SaleOrderWithStats], limit: str) -> List[SaleOrderWithStats]:
        """Órdenes con saldo que vencen hasta `limit` (incluye vencidas), por fecha."""
        due = [o for o in order_stats if o.remaining > 0 and o.due_date and o.due_date <= limit]
        return sorted(due, key=lambda o: o.due_date)

    def decisions(self, metrics: Dict[str, Any]) -> List[Dict[str, str]]:
        """Recomendaciones a partir de los KPIs del panel."""
        result = []
        if metrics['working_capital'] < 0:
            result.append({
                'code': 'STOP_IMPORT',
                'level': 'CRITICAL',
                'title': 'DỪNG NHẬP SIM',
                'desc': 'Vốn lưu động âm. Ưu tiên thu hồi nợ.',
            })
        if metrics['debt_due_soon_amount'] > DEBT_DUE_SOON_ALERT_AMOUNT:
            result.append({
                'code': 'PRIORITIZE_COLLECTION',
                'level': 'WARNING',
                'title': 'ƯU TIÊN THU NỢ',
                'desc': 'Nợ đến hạn cao trong tuần tới.',
            })
        if metrics['total_payable'] > SUPPLIER_PAYABLE_ALERT_AMOUNT:
            result.append({
                'code': 'PAY_SUPPLIERS',
                'level': 'WARNING',
                'title': 'TRẢ NỢ NCC',
                'desc': 'Khoản nợ NCC lớn, cần cân đối chi.',
            })
        if not result:
            result.append({
                'code': 'SAFE',
                'level': 'SAFE',
                'title': 'HỆ THỐNG ỔN ĐỊNH',
                'desc': 'Dòng tiền và tồn kho tối ưu.',
            })
        return result

    # =========================================================================
    # LISTADOS Y SERIES DEL PANEL
    # =========================================================================

    def filter_orders(
        self,
        order_stats: Iterable[SaleOrderWithStats],
        sale_type: Optional[SaleType] = None,
        start: str = None,
        end: str = None,
    ) -> List[SaleOrderWithStats]:
        """Órdenes del canal y rango pedidos (límites opcionales), más recientes primero."""
        result = [
            o for o in order_stats
            if (sale_type is None or o.order.sale_type == sale_type)
            and (not start or o.date >= start)
            and (not end or o.date <= end)
        ]
        return sorted(result, key=lambda o: o.date, reverse=True)

    @staticmethod
    def today_summary(order_stats: Iterable[SaleOrderWithStats], today: date = None) -> Dict[str, Any]:
        today_iso = _iso(today or date.today())
        todays = [o for o in order_stats if o.date == today_iso]
        return {'revenue': sum(o.total_amount for o in todays), 'orders': len(todays)}

    def daily_revenue(
        self, order_stats: Iterable[SaleOrderWithStats], start: str, end: str
    ) -> List[Dict[str, Any]]:
        """
        Facturación por día, un punto por cada día del rango (inclusive).

        Returns:
            [{'date': 'YYYY-MM-DD', 'day': 'DD', 'revenue': float}]
        """
        try:
            first = datetime.strptime(start, '%Y-%m-%d').date()
            last = datetime.strptime(end, '%Y-%m-%d').date()
        except (TypeError, ValueError):
            return []

        series = {}
        day = first
        while day <= last:
            series[_iso(day)] = 0.0
            day += timedelta(days=1)

        for order in order_stats:
            if order.date in series:
                series[order.date] += order.total_amount

        return [{'date': key, 'day': key[8:], 'revenue': value} for key, value in series.items()]

    @staticmethod
    def low_stock_products(
        inventory: Iterable[InventoryProductStat], threshold: int = DASHBOARD_LOW_STOCK_THRESHOLD
    ) -> List[InventoryProductStat]:
        """Productos bajo el umbral del panel, el de menor stock primero."""
        low = [p for p in inventory if p.current_stock < threshold]
        return sorted(low, key=lambda p: p.current_stock)

    # =========================================================================
    # POSICIÓN FINANCIERA Y RIESGO
    # =========================================================================

    def financial_position(
        self, derived: DerivedStats, transactions: Iterable[Transaction]
    ) -> Dict[str, float]:
        """Caja histórica + por cobrar - por pagar."""
        transactions = list(transactions)
        cash_on_hand = (
            sum(t.amount for t in transactions if t.type == TransactionType.IN)
            - sum(t.amount for t in transactions if t.type == TransactionType.OUT)
        )
        receivable = sum(o.remaining for o in derived.orders)
        payable = sum(p.total_remaining_payable for p in derived.inventory)
        return {
            'cash_on_hand': cash_on_hand,
            'inventory_value': self.inventory_value(derived.inventory),
            'total_receivable': receivable,
            'total_payable': payable,
            'net_cash_position': cash_on_hand + receivable - payable,
        }

    def top_debtors(
        self, customers: Iterable[CustomerWithStats], limit: int = TOP_DEBTORS_LIMIT
    ) -> List[CustomerWithStats]:
        debtors = [c for c in customers if c.current_debt > 0]
        debtors.sort(key=lambda c: c.current_debt, reverse=True)
        return debtors[:limit]

    def slow_inventory(self, inventory: Iterable[InventoryProductStat]) -> List[InventoryProductStat]:
        return [p for p in inventory if p.current_stock > SLOW_INVENTORY_STOCK]

    def risk_decisions(
        self,
        position: Dict[str, float],
        slow: List[InventoryProductStat],
        order_stats: Iterable[SaleOrderWithStats],
    ) -> List[Dict[str, str]]:
        result = []
        if position['net_cash_position'] < 0:
            result.append({
                'code': 'STOP_IMPORT',
                'level': 'CRITICAL',
                'title': 'DỪNG NHẬP HÀNG',
                'desc': 'Vị thế tiền mặt ròng đang âm. Ưu tiên thu hồi nợ trước khi tái đầu tư.',
            })
        if slow:
            result.append({
                'code': 'CLEAR_SLOW_STOCK',
                'level': 'WARNING',
                'title': 'XẢ KHO SIM TỒN',
                'desc': f'{len(slow)} mã hàng đang chiếm dụng vốn lớn. Cần chương trình khuyến mãi giảm tồn.',
            })
        bad_debts = sum(1 for o in order_stats if o.debt_level == DebtLevel.RECOVERY)
        if bad_debts:
            result.append({
                'code': 'LOCK_CREDIT',
                'level': 'ACTION',
                'title': 'KHÓA TÍN DỤNG KHÁCH HÀNG',
                'desc': f'Có {bad_debts} đơn hàng quá hạn nghiêm trọng. Ngừng bán nợ cho các đối tác này.',
            })
        if not result:
            result.append({
                'code': 'SAFE',
                'level': 'SAFE',
                'title': 'HỆ THỐNG AN TOÀN',
                'desc': 'Dòng tiền và tồn kho đang ở mức tối ưu.',
            })
        return result

    # =========================================================================
    # CALENDARIO Y COBRANZA
    # =========================================================================

    def calendar_month(
        self,
        year: int,
        month: int,
        order_stats: Iterable[SaleOrderWithStats],
        transactions: Iterable[Transaction],
    ) -> List[Dict[str, Any]]:
        """
        Un elemento por día del mes.

        Returns:
            [{'day': int, 'date': 'YYYY-MM-DD', 'profit': float,
              'orders': [SaleOrderWithStats], 'transactions': [Transaction]}]
        """
        orders_by_day = defaultdict(list)
        for order in order_stats:
            orders_by_day[order.date].append(order)
        tx_by_day = defaultdict(list)
        for tx in transactions:
            tx_by_day[tx.date].append(tx)

        days = []
        for day in range(1, calendar.monthrange(year, month)[1] + 1):
            key = f"{year:04d}-{month:02d}-{day:02d}"
            day_orders = orders_by_day.get(key, [])
            days.append({
                'day': day,
                'date': key,
                'profit': sum(o.profit for o in day_orders),
                'orders': day_orders,
                'transactions': tx_by_day.get(key, []),
            })
        return days

    def debt_reminder(self, order_stats: Iterable[SaleOrderWithStats], today: date = None) -> str:
        """Mensaje de cobranza (para copiar al chat) con la deuda de la semana."""
        today = today or date.today()
        limit = _iso(today + timedelta(days=DEBT_DUE_SOON_DAYS))
        due = self.debts_due_by(order_stats, limit)

        header = f"📋 THÔNG BÁO THU HỒI NỢ ({format_day(_iso(today))})\n----------------------------\n"
        if not due:
            return header + "✅ Không có nợ đến hạn."
        lines = [
            f"🚨 {o.customer_name} - Nợ: {format_vnd(o.remaining)} - Hạn: {format_day(o.due_date)}"
            for o in due
        ]
        return header + '\n'.join(lines)
