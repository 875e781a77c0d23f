"""
Tests for the email log and the status workflow that writes to it.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from core.exceptions import NotFoundError, OrderLockedError, PersistenceError, ValidationError
from models.email_log import PREVIEW_LENGTH, EmailLogEntry, parse_timestamp
from services import email_templates
from services.notification_log import NotificationLog


T0 = datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)


class TestListForOrder:

    def test_newest_first(self, notification_log, stored_order):
        for offset, subject in ((3, "third"), (1, "first"), (2, "second")):
            notification_log.record(stored_order.id, subject, "body",
                                    sent_at=T0 + timedelta(hours=offset))

        entries = [e for e in notification_log.list_for_order(stored_order.id)
                   if e.subject in ("first", "second", "third")]
        assert [e.subject for e in entries] == ["third", "second", "first"]
        assert entries[0].sent_at == T0 + timedelta(hours=3)

    def test_entries_are_scoped_to_the_order(self, ledger, notification_log, customer, sample_lines):
        products, _ = sample_lines
        first = ledger.create_order(customer, products)
        second = ledger.create_order(customer, products)
        notification_log.record(first.id, "Only for the first", "body")

        assert all(e.order_id == first.id for e in notification_log.list_for_order(first.id))
        subjects = [e.subject for e in notification_log.list_for_order(second.id)]
        assert "Only for the first" not in subjects

    def test_order_without_entries(self, notification_log):
        assert notification_log.list_for_order(987654) == []

    def test_missing_id(self, notification_log):
        with pytest.raises(ValidationError) as exc_info:
            notification_log.list_for_order(None)
        assert exc_info.value.message == "Order ID is required"

    @pytest.mark.parametrize("order_id", [0, -3, "12", 2.0])
    def test_invalid_id(self, notification_log, order_id):
        with pytest.raises(ValidationError) as exc_info:
            notification_log.list_for_order(order_id)
        assert exc_info.value.message == "Invalid Order ID"

    def test_storage_failure(self):
        db = MagicMock()
        db.fetch_all.side_effect = OperationalError("SELECT", {}, Exception("connection reset"))
        with pytest.raises(PersistenceError) as exc_info:
            NotificationLog(db).list_for_order(4)
        assert exc_info.value.to_dict() == {"error": "Internal server error"}


class TestEmailLogEntry:

    def test_preview_is_truncated(self):
        entry = EmailLogEntry(id=1, order_id=1, subject="s", content="x" * 500, sent_at=T0)
        assert len(entry.preview) == PREVIEW_LENGTH
        assert entry.to_dict()["content"] == "x" * 500

    def test_short_content_preview(self):
        entry = EmailLogEntry(id=1, order_id=1, subject="s", content="Thanks!", sent_at=T0)
        assert entry.preview == "Thanks!"

    def test_naive_timestamps_are_utc(self):
        assert parse_timestamp("2026-10-01 09:00:00") == T0
        assert parse_timestamp(datetime(2026, 10, 1, 9, 0)) == T0


class TestStatusChange:

    def test_status_change_appends_entry(self, app, notification_log, stored_order):
        before = len(notification_log.list_for_order(stored_order.id))
        app.config["ORDER_STATUS_SERVICE"].change_status(stored_order.id, "confirmed", "See you soon")

        entries = notification_log.list_for_order(stored_order.id)
        assert len(entries) == before + 1
        newest = entries[0]
        assert newest.subject == f"Order #{stored_order.id} update: confirmed"
        assert newest.template_id == "status_confirmed"
        assert "See you soon" in newest.content

    @pytest.mark.parametrize("status", [None, "", "shipped", "CONFIRMED"])
    def test_bad_status(self, app, stored_order, status):
        with pytest.raises(ValidationError):
            app.config["ORDER_STATUS_SERVICE"].change_status(stored_order.id, status)

    def test_unknown_order(self, app):
        with pytest.raises(NotFoundError):
            app.config["ORDER_STATUS_SERVICE"].change_status(5555, "confirmed")

    def test_terminal_status_is_final(self, app, notification_log, stored_order):
        service = app.config["ORDER_STATUS_SERVICE"]
        service.change_status(stored_order.id, "completed")
        count = len(notification_log.list_for_order(stored_order.id))

        with pytest.raises(OrderLockedError):
            service.change_status(stored_order.id, "pending")
        assert len(notification_log.list_for_order(stored_order.id)) == count


class TestEmailLogRoutes:

    def test_status_route_then_history(self, client, admin_headers, stored_order):
        response = client.patch(f"/api/admin/orders/{stored_order.id}/status",
                                headers=admin_headers, json={"status": "delayed"})
        assert response.status_code == 200
        assert response.get_json()["order"]["status"] == "delayed"

        logs = client.get(f"/api/admin/orders/{stored_order.id}/email-logs",
                          headers=admin_headers).get_json()
        assert logs[0]["subject"] == f"Order #{stored_order.id} update: delayed"
        assert logs[0]["status"] == "sent"
        assert len(logs[0]["preview"]) <= PREVIEW_LENGTH
        assert logs[-1]["template_id"] == "order_confirmation"

    def test_history_requires_admin(self, client, stored_order):
        response = client.get(f"/api/admin/orders/{stored_order.id}/email-logs")
        assert response.status_code == 401

    def test_invalid_status_value(self, client, admin_headers, stored_order):
        response = client.patch(f"/api/admin/orders/{stored_order.id}/status",
                                headers=admin_headers, json={"status": "lost"})
        assert response.status_code == 400
        assert response.get_json()["error"].startswith("Invalid status value")


class TestEmailTemplates:

    def test_every_status_has_a_template(self, stored_order):
        ids = email_templates.template_ids()
        assert ids[0] == "order_confirmation"
        for template_id in ids:
            email = email_templates.render(template_id, stored_order)
            assert email.template_id == template_id
            assert str(stored_order.id) in email.subject

    def test_confirmation_lists_lines_and_totals(self, stored_order):
        email = email_templates.render("order_confirmation", stored_order)
        assert email.subject == f"Order #{stored_order.id} received"
        assert "2 x XLR Cable @ $25.00" in email.content
        assert "Custom service: Speaker installation $75.00" in email.content
        assert "Total: $344.38" in email.content

    def test_status_note_is_included(self, stored_order):
        email = email_templates.render("status_delayed", stored_order, "New date: Nov 3")
        assert email.subject == f"Order #{stored_order.id} update: delayed"
        assert "New date: Nov 3" in email.content

    @pytest.mark.parametrize("template_id, message", [
        (None, "Template ID is required"),
        ("", "Template ID is required"),
        ("status_shipped", "Invalid template ID"),
        ("welcome", "Invalid template ID"),
        (7, "Invalid template ID"),
    ])
    def test_bad_template_id(self, stored_order, template_id, message):
        with pytest.raises(ValidationError) as exc_info:
            email_templates.render(template_id, stored_order)
        assert exc_info.value.message == message
        assert exc_info.value.field == "template_id"


class TestOrderMailer:

    def test_preview_writes_nothing(self, app, notification_log, stored_order):
        before = notification_log.list_for_order(stored_order.id)
        email = app.config["ORDER_MAILER"].preview(stored_order.id, "status_confirmed")
        assert email.subject == f"Order #{stored_order.id} update: confirmed"
        assert notification_log.list_for_order(stored_order.id) == before

    def test_send_appends_entry(self, app, notification_log, stored_order):
        entry = app.config["ORDER_MAILER"].send(stored_order.id, "order_confirmation")
        entries = notification_log.list_for_order(stored_order.id)
        assert len(entries) == 2
        assert entry.template_id == "order_confirmation"
        assert entry.id in [e.id for e in entries]

    def test_unknown_order(self, app):
        with pytest.raises(NotFoundError):
            app.config["ORDER_MAILER"].send(98765, "status_pending")

    def test_bad_template_writes_nothing(self, app, notification_log, stored_order):
        with pytest.raises(ValidationError):
            app.config["ORDER_MAILER"].send(stored_order.id, "status_lost")
        assert len(notification_log.list_for_order(stored_order.id)) == 1


class TestTemplateRoutes:

    def test_preview(self, client, admin_headers, notification_log, stored_order):
        response = client.get(f"/api/admin/orders/{stored_order.id}/preview-template",
                              headers=admin_headers,
                              query_string={"templateId": "status_confirmed", "note": "Pickup at noon"})
        assert response.status_code == 200
        body = response.get_json()
        assert body["template_id"] == "status_confirmed"
        assert body["subject"] == f"Order #{stored_order.id} update: confirmed"
        assert "Pickup at noon" in body["content"]
        assert len(notification_log.list_for_order(stored_order.id)) == 1

    def test_send(self, client, admin_headers, stored_order):
        response = client.post(f"/api/admin/orders/{stored_order.id}/send-template",
                               headers=admin_headers,
                               json={"template_id": "status_delayed", "note": "Back-ordered"})
        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] is True
        assert body["email"]["subject"] == f"Order #{stored_order.id} update: delayed"

        logs = client.get(f"/api/admin/orders/{stored_order.id}/email-logs",
                          headers=admin_headers).get_json()
        assert len(logs) == 2
        assert {log["template_id"] for log in logs} == {"order_confirmation", "status_delayed"}

    def test_send_does_not_change_status(self, client, admin_headers, stored_order):
        client.post(f"/api/admin/orders/{stored_order.id}/send-template",
                    headers=admin_headers, json={"template_id": "status_completed"})
        order = client.get(f"/api/admin/orders/{stored_order.id}", headers=admin_headers).get_json()
        assert order["status"] == "pending"

    def test_send_errors(self, client, admin_headers, stored_order):
        url = f"/api/admin/orders/{stored_order.id}/send-template"

        response = client.post(url, headers=admin_headers, json={})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Template ID is required"

        response = client.post(url, headers=admin_headers, json={"template_id": "status_lost"})
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid template ID"

        response = client.post("/api/admin/orders/31337/send-template", headers=admin_headers,
                               json={"template_id": "status_pending"})
        assert response.status_code == 404

    def test_template_routes_require_admin(self, client, stored_order):
        base = f"/api/admin/orders/{stored_order.id}"
        assert client.get(f"{base}/preview-template?template_id=status_pending").status_code == 401
        response = client.post(f"{base}/send-template", json={"template_id": "status_pending"})
        assert response.status_code == 401
