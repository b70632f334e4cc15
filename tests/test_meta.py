import pytest

from yencstream.meta import DecodedMeta, Meta, MetaError


def _field_error(meta):
    with pytest.raises(MetaError) as info:
        meta.validate()
    return info.value.field


def test_validation_sequence():
    m = Meta()
    assert _field_error(m) == "file_name"
    m.file_name = "foobar"

    assert _field_error(m) == "file_size"
    m.file_size = 1000

    assert _field_error(m) == "part_number"
    m.part_number = 1

    assert _field_error(m) == "total_parts"
    m.total_parts = 10

    m.offset = -1
    assert _field_error(m) == "offset"
    m.offset = 0

    assert _field_error(m) == "part_size"
    m.part_size = 100

    assert m.validate() is None


def test_meta_error_is_value_error():
    with pytest.raises(ValueError, match="file name is empty"):
        Meta().validate()


def test_begin_and_end_single_part():
    m = Meta(file_name="f", file_size=100, part_number=1, total_parts=1, part_size=100)
    assert m.begin() == 1
    assert m.end() == 100


def test_begin_and_end_with_offset():
    m = Meta(offset=100, part_size=50)
    assert m.begin() == m.offset + 1
    assert m.end() - m.begin() + 1 == m.part_size


def test_decoded_meta_defaults_and_inheritance():
    d = DecodedMeta(file_name="x", part_size=6, hash=0x9EF61F95)
    assert d.hash == 0x9EF61F95
    assert d.end() == 6
    assert DecodedMeta().hash == 0