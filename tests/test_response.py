from stockroom.schemas.products.product_schemas import ProductListData
from stockroom.utils.response import page_count, page_fields, success_response


def test_page_count_rounds_up():
    assert page_count(0, 20) == 1
    assert page_count(20, 20) == 1
    assert page_count(21, 20) == 2


def test_unpaged_reads_are_a_single_page():
    assert page_count(500, None) == 1


def test_page_fields_fill_a_list_payload():
    data = ProductListData(**page_fields([], None, page=3, page_size=10))

    assert data.total == 0
    assert data.items == []
    assert (data.page, data.page_size, data.pages) == (3, 10, 1)


def test_success_envelope():
    assert success_response("ok", {"id": 1}) == {
        "success": True,
        "message": "ok",
        "data": {"id": 1},
    }
