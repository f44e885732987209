from datetime import datetime, timezone

import pytest

from certradar.colors import set_color_enabled
from certradar.models import (
    CaaAnalysis,
    CertificateChainInfo,
    ChainCertificateInfo,
    CipherPreferenceInfo,
    CipherSuiteInfo,
    ForwardSecrecyInfo,
    HstsInfo,
    HstsPreloadStatus,
    OcspStaplingInfo,
    ProtocolSupport,
    SecurityIssue,
    SslAnalysisResult,
    SslCertificateInfo,
)
from certradar.render_ssl import format_ssl_analysis


@pytest.fixture(autouse=True)
def plain_output():
    set_color_enabled(False)
    yield
    set_color_enabled(True)


def chain_cert(position, cert_type, subject, days):
    return ChainCertificateInfo(
        position=position,
        cert_type=cert_type,
        subject=subject,
        issuer="Root CA",
        valid_from="2024-01-01",
        valid_until="2025-01-01",
        days_remaining=days,
        serial_number="ABC123",
        signature_algorithm="sha256WithRSAEncryption",
        key_type="RSA",
        key_size=2048,
        is_self_signed=cert_type == "root",
    )


def cipher(name, fs):
    return CipherSuiteInfo(
        name=name,
        protocol="TLS 1.2",
        key_exchange="ECDHE" if fs else "RSA",
        encryption="AES-128-GCM",
        bits=128,
        is_weak=False,
        has_forward_secrecy=fs,
    )


def make_result(**overrides):
    values = dict(
        host="example.com",
        port=443,
        protocols=ProtocolSupport(tls_1_3=True, tls_1_2=True, tls_1_1=False, tls_1_0=False),
        certificate=SslCertificateInfo(
            subject="example.com",
            issuer="Test Issuer",
            valid_from="2024-01-01",
            valid_until="2025-01-01",
            days_remaining=365,
            serial_number="ABC123",
            signature_algorithm="sha256WithRSAEncryption",
            key_type="RSA",
            key_size=2048,
            subject_alt_names=["example.com", "www.example.com"],
        ),
        cipher_suites=[cipher("ECDHE-RSA-AES128-GCM-SHA256", True), cipher("AES128-SHA", False)],
        security_grade="A",
        issues=[],
        forward_secrecy=ForwardSecrecyInfo(supported=True, all_ciphers_support=False),
        analyzed_at=datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return SslAnalysisResult(**values)


def test_header_and_grade():
    out = format_ssl_analysis(make_result())
    assert "SSL/TLS Analysis: example.com:443" in out
    assert "Grade: A    Analyzed: 2024-05-06 07:08:09 UTC" in out


def test_certificate_lines():
    out = format_ssl_analysis(make_result())
    assert "  Subject:     example.com\n" in out
    assert "  Key Type:    RSA 2048-bit\n" in out
    assert "  SANs:        example.com, www.example.com\n" in out


def test_many_sans_are_shortened():
    sans = [f"h{i}.example.com" for i in range(7)]
    result = make_result()
    result.certificate.subject_alt_names = sans
    out = format_ssl_analysis(result)
    assert ", ".join(sans[:5]) + ", ... (+2 more)" in out
    assert sans[5] not in out


def test_deprecated_protocols_flagged():
    protocols = ProtocolSupport(tls_1_3=False, tls_1_2=True, tls_1_1=True, tls_1_0=True)
    out = format_ssl_analysis(make_result(protocols=protocols))
    assert out.count("(deprecated)") == 2


def test_missing_hsts_and_ocsp():
    out = format_ssl_analysis(make_result())
    assert "OCSP Stapling:  Unknown" in out
    assert "HSTS:           [X]\n" in out


def test_hsts_preloaded_and_ocsp_status():
    hsts = HstsInfo(
        enabled=True,
        max_age=31536000,
        include_subdomains=True,
        preload=True,
        preload_status=HstsPreloadStatus(is_preloaded=True, status="preloaded"),
    )
    ocsp = OcspStaplingInfo(enabled=True, response_status="successful", cert_status="good")
    out = format_ssl_analysis(make_result(hsts=hsts, ocsp_stapling=ocsp))
    assert "(max-age: 31536000) [PRELOADED]" in out
    assert "(status: good)" in out


def test_forward_secrecy_count():
    out = format_ssl_analysis(make_result())
    assert "(1/2 ciphers)" in out


def test_caa_and_cipher_preference():
    pref = CipherPreferenceInfo(
        server_enforces_preference=True, preferred_cipher="ECDHE-RSA-AES256-GCM-SHA384"
    )
    out = format_ssl_analysis(make_result(caa=CaaAnalysis(), cipher_preference=pref))
    assert "CAA Records:    [X]" in out
    assert "Preferred:      ECDHE-RSA-AES256-GCM-SHA384" in out


def test_chain_table_shown_for_long_chain():
    chain = CertificateChainInfo(
        length=2,
        valid=True,
        chain_complete=False,
        certificates=[
            chain_cert(0, "leaf", "a-very-long-subject-name.example.com", 365),
            chain_cert(1, "intermediate", "Expired CA", -3),
        ],
    )
    result = make_result()
    result.certificate.chain = chain
    out = format_ssl_analysis(result)
    assert "Certificate Chain" in out
    assert "EXPIRED" in out
    assert "Intermediate" in out
    assert "a-very-long-subject-name.example.com" not in out


def test_chain_table_hidden_for_single_cert():
    chain = CertificateChainInfo(
        length=1,
        valid=True,
        chain_complete=False,
        certificates=[chain_cert(0, "leaf", "example.com", 365)],
    )
    result = make_result()
    result.certificate.chain = chain
    assert "Certificate Chain" not in format_ssl_analysis(result)


def test_issues_and_promo():
    issue = SecurityIssue(
        severity="critical",
        code="CERT_EXPIRED",
        title="Certificate Expired",
        description="It expired.",
    )
    out = format_ssl_analysis(make_result(issues=[issue]))
    assert "  !!! Certificate Expired - It expired.\n" in out
    assert "Continuous monitoring" in out
    assert out.index("Issues") < out.index("Continuous monitoring")