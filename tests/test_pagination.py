from pagination import PageParams, build_pagination


def test_build_pagination_rounds_up():
    meta = build_pagination(page=1, limit=20, total=41)
    assert meta.totalPages == 3
    assert meta.hasNext is True
    assert meta.hasPrev is False


def test_build_pagination_last_page():
    meta = build_pagination(page=3, limit=20, total=41)
    assert meta.hasNext is False
    assert meta.hasPrev is True


def test_build_pagination_empty():
    meta = build_pagination(page=1, limit=20, total=0)
    assert meta.totalPages == 0
    assert meta.hasNext is False


def test_offset():
    assert PageParams(page=3, limit=15).offset == 30
