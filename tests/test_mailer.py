import smtplib
from types import SimpleNamespace

import pytest

from ouverture.services import mailer
from ouverture.services.integration import CONFIGURATION, TRANSPORT


class FakeSMTP:
    instances = []
    fail_on_send = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.sent = []
        self.started_tls = False
        self.logged_in = None
        self.closed = False
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def starttls(self, context=None):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = (username, password)

    def send_message(self, message):
        if FakeSMTP.fail_on_send:
            raise FakeSMTP.fail_on_send
        self.sent.append(message)

    def noop(self):
        return (250, b"OK")

    def close(self):
        self.closed = True


@pytest.fixture
def smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_on_send = None
    monkeypatch.setenv("SMTP_HOST", "smtp.test")
    monkeypatch.setenv("SMTP_USERNAME", "noreply@jardins.test")
    monkeypatch.setenv("SMTP_PASSWORD", "secret")
    monkeypatch.setattr(mailer.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def make_demande(**overrides):
    values = dict(
        id=3,
        company_name="Dépanneur du Coin",
        owner_name="Luc Gagnon",
        contact_name=None,
        address="45 boul. Talbot",
        city="Chicoutimi",
        postal_code="G7H 4A1",
        phone="418-555-0000",
        sector="depanneur",
        promo_accepted=True,
        promo_min_order=25000,
        email_responsable="luc@coin.ca",
        email_facturation="factures@coin.ca",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def test_approval_email_cc_billing_when_distinct(smtp):
    res = mailer.send_approval_email(make_demande())
    assert res.success is True

    server = smtp.instances[0]
    assert server.started_tls is True
    assert server.logged_in == ("noreply@jardins.test", "secret")
    assert server.closed is True

    message = server.sent[0]
    assert message["To"] == "luc@coin.ca"
    assert message["Cc"] == "factures@coin.ca"
    assert message["Subject"] == "Bienvenue Dépanneur du Coin - Votre compte est approuvé!"


def test_approval_email_no_cc_when_same_address(smtp):
    res = mailer.send_approval_email(make_demande(email_facturation="LUC@coin.ca"))
    assert res.success is True
    assert smtp.instances[0].sent[0]["Cc"] is None
    assert res.data["cc"] is None


def test_missing_smtp_host_is_a_configuration_error(monkeypatch):
    called = []
    monkeypatch.setattr(mailer.smtplib, "SMTP", lambda *a, **k: called.append(a))
    res = mailer.send_approval_email(make_demande())
    assert res.success is False
    assert res.error_kind == CONFIGURATION
    assert res.retryable is False
    assert called == []


def test_transport_failure_is_reported(smtp):
    smtp.fail_on_send = smtplib.SMTPRecipientsRefused({"luc@coin.ca": (550, b"unknown")})
    res = mailer.send_approval_email(make_demande())
    assert res.success is False
    assert res.error_kind == TRANSPORT
    assert res.retryable is True
    assert len(smtp.instances) == 1


def test_connection_refused_is_reported(monkeypatch, smtp):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("connexion refusée")

    monkeypatch.setattr(mailer.smtplib, "SMTP", refuse)
    res = mailer.send_email("luc@coin.ca", "Test", "<p>Test</p>")
    assert res.success is False
    assert res.error_kind == TRANSPORT
    assert "connexion refusée" in res.error


def test_rendered_email_contains_promo_and_sector():
    html = mailer.render_approval_email(make_demande())
    assert "Luc Gagnon" in html
    assert "Dépanneur" in html
    assert "25 000 $" in html
    assert "Programme Carte Promo" in html


def test_rendered_email_without_promo():
    html = mailer.render_approval_email(make_demande(promo_accepted=False, promo_min_order=None, contact_name="Julie Roy"))
    assert "Programme Carte Promo" not in html
    assert "Julie Roy" in html


def test_rendered_email_escapes_user_input():
    html = mailer.render_approval_email(make_demande(company_name="<script>alert(1)</script>"))
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_verify_smtp_connection(smtp):
    assert mailer.verify_smtp_connection().success is True
    assert smtp.instances[0].closed is True
