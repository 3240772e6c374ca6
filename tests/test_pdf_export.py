"""
Tests: PDF rendering, export recording and tracked recipient downloads.
"""

import pytest

from proposalhub.models import db as _db
from proposalhub.models.proposal import PdfExport, Proposal
from proposalhub.models.tracking import ProposalDownload
from proposalhub.services import tracking_service
from proposalhub.services.pdf_service import render_proposal_pdf, safe_pdf_filename


@pytest.mark.parametrize("title,expected", [
    ("Office Deep Clean", "office_deep_clean.pdf"),
    ("Q3: Windows & Floors!", "q3__windows___floors_.pdf"),
    ("", "proposal.pdf"),
])
def test_safe_pdf_filename(title, expected):
    assert safe_pdf_filename(title) == expected


@pytest.mark.parametrize("template", ["professional", "modern", "classic", "minimal", "unknown"])
def test_render_produces_pdf_bytes(tenant, make_proposal, template):
    data = render_proposal_pdf(make_proposal(tenant), template)
    assert data.startswith(b"%PDF")
    assert data.rstrip().endswith(b"%%EOF")


def test_render_without_pricing(tenant, make_proposal):
    data = render_proposal_pdf(make_proposal(tenant, pricing_data={}))
    assert data.startswith(b"%PDF")


def test_export_endpoint_records_export(client, tenant, make_proposal, auth_headers):
    p = make_proposal(tenant)

    res = client.post(f"/api/v1/proposals/{p.id}/export", json={"template": "modern"},
                      headers=auth_headers(tenant))

    assert res.status_code == 200
    assert res.mimetype == "application/pdf"
    assert 'filename="office_deep_clean.pdf"' in res.headers["Content-Disposition"]
    export = PdfExport.query.one()
    assert export.proposal_id == p.id
    assert export.tenant_id == tenant.id
    assert export.template_used == "modern"
    assert export.file_size == len(res.data)


def test_export_foreign_proposal_is_404(client, make_tenant, make_proposal, auth_headers):
    owner = make_tenant()
    other = make_tenant()
    p = make_proposal(owner)

    res = client.post(f"/api/v1/proposals/{p.id}/export", json={}, headers=auth_headers(other))

    assert res.status_code == 404
    assert PdfExport.query.count() == 0


def test_tracked_download_counts_on_token_and_proposal(client, tenant, make_proposal):
    p = make_proposal(tenant)
    token = tracking_service.create_tracking_token(p)

    res = client.get(f"/api/v1/proposals/{p.id}/download?tracking={token.tracking_id}")

    assert res.status_code == 200
    assert res.data.startswith(b"%PDF")
    _db.session.expire_all()
    assert tracking_service.get_tracking(token.tracking_id).download_count == 1
    assert _db.session.get(Proposal, p.id).download_count == 1
    assert ProposalDownload.query.count() == 1


def test_download_with_token_for_other_proposal_is_404(client, tenant, make_proposal):
    p1 = make_proposal(tenant)
    p2 = make_proposal(tenant, title="Other")
    token = tracking_service.create_tracking_token(p1)

    res = client.get(f"/api/v1/proposals/{p2.id}/download?tracking={token.tracking_id}")

    assert res.status_code == 404
    assert ProposalDownload.query.count() == 0


def test_download_without_token_is_404_for_anonymous(client, tenant, make_proposal):
    p = make_proposal(tenant)
    assert client.get(f"/api/v1/proposals/{p.id}/download").status_code == 404


def test_owner_download_is_not_tracked(client, tenant, make_proposal, auth_headers):
    p = make_proposal(tenant)

    res = client.get(f"/api/v1/proposals/{p.id}/download", headers=auth_headers(tenant))

    assert res.status_code == 200
    assert ProposalDownload.query.count() == 0
    assert _db.session.get(Proposal, p.id).download_count == 0


def test_export_unknown_template_falls_back(client, tenant, make_proposal, auth_headers):
    p = make_proposal(tenant)

    res = client.post(f"/api/v1/proposals/{p.id}/export", json={"template": "neon"},
                      headers=auth_headers(tenant))

    assert res.status_code == 200
    assert PdfExport.query.one().template_used == "professional"


@pytest.mark.parametrize("template", [{}, ["modern"], 7])
def test_export_non_string_template_falls_back(client, tenant, make_proposal, auth_headers, template):
    p = make_proposal(tenant)

    res = client.post(f"/api/v1/proposals/{p.id}/export", json={"template": template},
                      headers=auth_headers(tenant))

    assert res.status_code == 200
    assert PdfExport.query.one().template_used == "professional"
