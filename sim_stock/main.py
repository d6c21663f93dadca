# ==============================================================================
# API HTTP (Flask) - Adaptador delgado sobre los servicios
# ==============================================================================
# Las rutas SOLO traducen HTTP ↔ servicios: ninguna regla de negocio vive
# aquí. La cuenta se toma del header X-Account-Id (o la cuenta por defecto).
#
# Errores → {"success": false, "error": "..."}:
#   RecordNotFoundError   → 404
#   BusinessRuleViolation → 400
#   ImportParseError      → 400
#   StoreWriteError       → 500
#
# Comando (desarrollo):
#   python -m sim_stock.main
# ==============================================================================

import io
import logging
import os
from datetime import date

from flask import Flask, jsonify, request, send_file
from werkzeug.utils import secure_filename

from sim_stock.app_container import AppContainer
from sim_stock.config import Settings, configure_logging
from sim_stock.exceptions import (
    BusinessRuleViolation,
    ImportParseError,
    RecordNotFoundError,
    StoreWriteError,
)
from sim_stock.models.entities import SaleType
from sim_stock.services.backup_service import XLSX_MIMETYPE, export_bytes, export_filename
from sim_stock.services.customer_service import search_customers
from sim_stock.services.payment_service import cash_balance, pending_orders, pending_payables
from sim_stock.services.sales_service import list_due_date_logs

logger = logging.getLogger(__name__)

ACCOUNT_HEADER = 'X-Account-Id'


def to_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def to_float(value, default=0.0):
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def create_app(settings: Settings = None) -> Flask:
    """
    Crea la aplicación Flask.

    Args:
        settings: Configuración (por defecto, desde variables de entorno)
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if settings.production_mode and settings.uses_default_secret:
        logger.warning("[CONFIG] Modo producción sin SIM_STOCK_SECRET_KEY definida")

    AppContainer.reset_instance()
    container = AppContainer(settings)

    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config['SIM_STOCK_SETTINGS'] = settings

    def current_account() -> str:
        return (request.headers.get(ACCOUNT_HEADER) or '').strip() or settings.default_account

    def payload() -> dict:
        return request.get_json(silent=True) or {}

    # ═══════════════════════════════════════════════════════════════════════
    # MANEJO DE ERRORES
    # ═══════════════════════════════════════════════════════════════════════

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(e):
        return jsonify({"success": False, "error": str(e)}), 404

    @app.errorhandler(BusinessRuleViolation)
    def handle_business_rule(e):
        return jsonify({"success": False, "error": str(e)}), 400

    @app.errorhandler(ImportParseError)
    def handle_import_parse(e):
        return jsonify({"success": False, "error": str(e)}), 400

    @app.errorhandler(StoreWriteError)
    def handle_store_write(e):
        logger.error("[STORE] %s (%s/%s)", e, e.entity, e.operation)
        return jsonify({"success": False, "error": str(e)}), 500

    # ═══════════════════════════════════════════════════════════════════════
    # SESIÓN DE CUENTA
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/login", methods=["POST"])
    def api_login():
        account_id = (payload().get('account') or '').strip() or current_account()
        dataset = container.open_session(account_id).snapshot()
        return {"success": True, "account": account_id, "counts": dataset.counts()}

    @app.route("/api/logout", methods=["POST"])
    def api_logout():
        account_id = current_account()
        container.close_session(account_id)
        return {"success": True, "account": account_id}

    # ═══════════════════════════════════════════════════════════════════════
    # CONSULTAS (estadísticas derivadas)
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/inventory")
    def api_inventory():
        _, derived = container.stats_service.derive(current_account())
        return {"success": True, "inventory": [p.to_dict() for p in derived.inventory]}

    @app.route("/api/orders")
    def api_orders():
        stats = container.stats_service
        _, derived = stats.derive(current_account())

        sale_type = request.args.get('saleType') or None
        if sale_type is not None:
            try:
                sale_type = SaleType(sale_type.upper())
            except ValueError:
                raise BusinessRuleViolation(f"Tipo de venta inválido: {sale_type}")

        orders = stats.filter_orders(
            derived.orders, sale_type, request.args.get('start'), request.args.get('end')
        )
        return {"success": True, "orders": [o.to_dict() for o in orders]}

    @app.route("/api/orders/<order_id>/logs")
    def api_order_logs(order_id):
        dataset = container.snapshot(current_account())
        logs = list_due_date_logs(dataset.due_date_logs, order_id)
        return {"success": True, "logs": [log.to_dict() for log in logs]}

    @app.route("/api/customers")
    def api_customers():
        _, derived = container.stats_service.derive(current_account())
        found = search_customers(derived.customers, request.args.get('q', ''))
        return {"success": True, "customers": [c.to_dict() for c in found]}

    @app.route("/api/cashflow")
    def api_cashflow():
        dataset, derived = container.stats_service.derive(current_account())
        start = request.args.get('start') or None
        end = request.args.get('end') or None
        return {
            "success": True,
            "balance": cash_balance(dataset.transactions, start, end),
            "pending_orders": [o.to_dict() for o in pending_orders(derived.orders)],
            "pending_payables": [b.to_dict() for b in pending_payables(derived.inventory)],
            "transactions": [t.to_dict() for t in dataset.transactions],
        }

    @app.route("/api/dashboard")
    def api_dashboard():
        stats = container.stats_service
        dataset, derived = stats.derive(current_account())

        period = request.args.get('period', 'month')
        if period not in ('today', 'week', 'month', 'custom'):
            period = 'month'
        today = date.today()
        start, end = stats.period_range(
            period, request.args.get('start', ''), request.args.get('end', ''), today
        )

        metrics = stats.control_center(derived, dataset.transactions, start, end, today)
        position = stats.financial_position(derived, dataset.transactions)
        slow = stats.slow_inventory(derived.inventory)
        return {
            "success": True,
            "period": {"name": period, "start": start, "end": end},
            "today": stats.today_summary(derived.orders, today),
            "metrics": metrics,
            "decisions": stats.decisions(metrics),
            "position": position,
            "top_debtors": [c.to_dict() for c in stats.top_debtors(derived.customers)],
            "slow_inventory": [p.to_dict() for p in slow],
            "low_stock": [p.to_dict() for p in stats.low_stock_products(derived.inventory)],
            "daily_revenue": stats.daily_revenue(derived.orders, start, end),
            "risk_decisions": stats.risk_decisions(position, slow, derived.orders),
            "debt_reminder": stats.debt_reminder(derived.orders, today),
        }

    @app.route("/api/calendar")
    def api_calendar():
        stats = container.stats_service
        dataset, derived = stats.derive(current_account())
        today = date.today()
        year = to_int(request.args.get('year'), today.year)
        month = to_int(request.args.get('month'), today.month)
        if not 1 <= month <= 12:
            raise BusinessRuleViolation(f"Mes inválido: {month}")

        days = stats.calendar_month(year, month, derived.orders, dataset.transactions)
        return {
            "success": True,
            "year": year,
            "month": month,
            "days": [
                {
                    "day": d['day'],
                    "date": d['date'],
                    "profit": d['profit'],
                    "orders": [o.to_dict() for o in d['orders']],
                    "transactions": [t.to_dict() for t in d['transactions']],
                }
                for d in days
            ],
        }

    # ═══════════════════════════════════════════════════════════════════════
    # INVENTARIO
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/sim-types", methods=["POST"])
    def api_add_sim_type():
        sim_type = container.inventory_service.add_sim_type(current_account(), payload().get('name'))
        return {"success": True, "sim_type": sim_type.to_dict()}, 201

    @app.route("/api/sim-types/<sim_type_id>", methods=["DELETE"])
    def api_delete_sim_type(sim_type_id):
        sim_type = container.inventory_service.delete_sim_type(current_account(), sim_type_id)
        return {"success": True, "sim_type": sim_type.to_dict()}

    @app.route("/api/packages", methods=["POST"])
    def api_add_package():
        data = payload()
        quantity = to_int(data.get('quantity'))
        if quantity is None:
            return {"success": False, "error": "Cantidad inválida"}, 400
        package = container.inventory_service.add_package(
            current_account(),
            sim_type_id=data.get('simTypeId'),
            quantity=quantity,
            total_import_price=to_float(data.get('totalImportPrice')),
            import_date=data.get('importDate'),
            payment_method=data.get('paymentMethod') or 'TRANSFER',
            due_date=data.get('dueDate'),
        )
        return {"success": True, "package": package.to_dict()}, 201

    @app.route("/api/packages/<package_id>", methods=["DELETE"])
    def api_delete_package(package_id):
        package = container.inventory_service.delete_package(current_account(), package_id)
        return {"success": True, "package": package.to_dict()}

    # ═══════════════════════════════════════════════════════════════════════
    # VENTAS
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/orders", methods=["POST"])
    def api_create_order():
        data = payload()
        order, income = container.sales_service.create_order(
            current_account(),
            sim_type_id=data.get('simTypeId'),
            date=data.get('date'),
            quantity=to_int(data.get('quantity'), 1),
            sale_price=to_float(data.get('salePrice')),
            sale_type=data.get('saleType') or 'RETAIL',
            customer_id=data.get('customerId'),
            retail_customer_info=data.get('retailCustomerInfo') or '',
            is_paid=bool(data.get('isPaid')),
            due_date=data.get('dueDate'),
            payment_method=data.get('paymentMethod') or 'TRANSFER',
            note=data.get('note') or '',
            sim_package_id=data.get('simPackageId'),
        )
        return {
            "success": True,
            "order": order.to_dict(),
            "transaction": income.to_dict() if income is not None else None,
        }, 201

    @app.route("/api/orders/<order_id>", methods=["DELETE"])
    def api_delete_order(order_id):
        order = container.sales_service.delete_order(current_account(), order_id)
        return {"success": True, "order": order.to_dict()}

    @app.route("/api/orders/<order_id>/due-date", methods=["POST"])
    def api_extend_due_date(order_id):
        data = payload()
        order, log = container.sales_service.extend_due_date(
            current_account(), order_id, data.get('newDate'), data.get('reason') or ''
        )
        return {"success": True, "order": order.to_dict(), "log": log.to_dict()}

    # ═══════════════════════════════════════════════════════════════════════
    # CAJA
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/transactions", methods=["POST"])
    def api_add_transaction():
        data = payload()
        tx = container.payment_service.add_transaction(
            current_account(),
            tx_type=data.get('type'),
            amount=to_float(data.get('amount')),
            date=data.get('date'),
            category=data.get('category') or '',
            method=data.get('method') or 'TRANSFER',
            sale_order_id=data.get('saleOrderId'),
            sim_package_id=data.get('simPackageId'),
            note=data.get('note') or '',
        )
        return {"success": True, "transaction": tx.to_dict()}, 201

    @app.route("/api/transactions/<transaction_id>", methods=["DELETE"])
    def api_delete_transaction(transaction_id):
        tx = container.payment_service.delete_transaction(current_account(), transaction_id)
        return {"success": True, "transaction": tx.to_dict()}

    # ═══════════════════════════════════════════════════════════════════════
    # CLIENTES
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/api/customers", methods=["POST"])
    def api_add_customer():
        data = payload()
        customer = container.customer_service.add_customer(
            current_account(),
            name=data.get('name'),
            phone=data.get('phone') or '',
            email=data.get('email') or '',
            address=data.get('address') or '',
            customer_type=data.get('type') or 'WHOLESALE',
            note=data.get('note') or '',
        )
        return {"success": True, "customer": customer.to_dict()}, 201

    @app.route("/api/customers/<customer_id>", methods=["PUT"])
    def api_update_customer(customer_id):
        customer = container.customer_service.update_customer(current_account(), customer_id, payload())
        return {"success": True, "customer": customer.to_dict()}

    @app.route("/api/customers/<customer_id>", methods=["DELETE"])
    def api_delete_customer(customer_id):
        customer = container.customer_service.delete_customer(current_account(), customer_id)
        return {"success": True, "customer": customer.to_dict()}

    # ═══════════════════════════════════════════════════════════════════════
    # EXPORTACIÓN / RESTAURACIÓN / BACKUPS
    # ═══════════════════════════════════════════════════════════════════════

    @app.route("/backup/export")
    def backup_export():
        account_id = current_account()
        content = export_bytes(container.snapshot(account_id))
        return send_file(
            io.BytesIO(content),
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name=export_filename(account_id),
        )

    @app.route("/backup/import", methods=["POST"])
    def backup_import():
        upload = request.files.get('file')
        if upload is None or not upload.filename:
            return {"success": False, "error": "No se recibió ningún archivo"}, 400

        account_id = current_account()
        logger.info("[IMPORT] Archivo recibido: %s", secure_filename(upload.filename))
        counts = container.restore_service.restore(account_id, upload.read())
        return {"success": True, "counts": counts}

    @app.route("/backup/create", methods=["POST"])
    def backup_create():
        account_id = current_account()
        result = container.backup_service.create_backup(
            account_id, container.snapshot(account_id), force=bool(payload().get('force'))
        )
        return result, 200 if result['success'] else 500

    @app.route("/backup/status")
    def backup_status():
        return container.backup_service.get_backup_status(current_account())

    return app


if __name__ == "__main__":
    # En producción usar WSGI (gunicorn, waitress, etc.)
    DEBUG = os.environ.get('FLASK_DEBUG', '0') == '1'
    HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    PORT = int(os.environ.get('FLASK_PORT', 5000))

    create_app().run(host=HOST, port=PORT, debug=DEBUG)
