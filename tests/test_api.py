import io

import pytest
from fastapi.testclient import TestClient
from pptx import Presentation

from deckport.api.pptx_endpoints import PPTX_MEDIA_TYPE, create_app
from deckport.models.elements import Fill, ShapeElement, ShapeType
from deckport.models.presentation import Document, Slide
from pptx_builders import scheme, slide_xml, sp, xfrm

INCH = 914400


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


def test_import_returns_wire_document(client, builder):
    data = builder.add_slide(slide_xml(sp(2, geometry="rect", frame=xfrm(INCH, INCH, INCH, INCH), fill=scheme("accent2")))).build()
    response = client.post(
        "/api/pptx/import",
        files={"file": ("deck.pptx", data, PPTX_MEDIA_TYPE)},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["document"]["name"] == "deck"
    assert body["document"]["slides"][0]["elements"][0]["shapeType"] == "rectangle"


def test_import_rejects_other_extensions(client):
    response = client.post("/api/pptx/import", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 400


def test_import_reports_corrupt_archive(client):
    response = client.post("/api/pptx/import", files={"file": ("broken.pptx", b"not a zip", PPTX_MEDIA_TYPE)})
    assert response.status_code == 422


def test_export_returns_package(client):
    document = Document(name="Board Deck", slides=[Slide(elements=[
        ShapeElement(
            position={"x": 10, "y": 10},
            size={"width": 100, "height": 50},
            shape_type=ShapeType.RECTANGLE,
            fill=Fill(type="solid", color="#336699"),
        ),
    ])])
    response = client.post("/api/pptx/export", json=document.to_wire())

    assert response.status_code == 200
    assert response.headers["content-type"] == PPTX_MEDIA_TYPE
    assert 'filename="Board Deck.pptx"' in response.headers["content-disposition"]
    prs = Presentation(io.BytesIO(response.content))
    assert len(prs.slides) == 1


def test_export_validates_body(client):
    response = client.post("/api/pptx/export", json={"slides": [{"elements": [{"type": "unknown"}]}]})
    assert response.status_code == 422
