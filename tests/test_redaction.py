from app.services.privacy_service import mask_email, mask_value, redact_address, redact_addresses


def test_mask_value_keeps_length():
    assert mask_value("Berlin") == "******"
    assert mask_value("") == ""
    assert mask_value(None) is None
    assert mask_value(10115) == 10115


def test_mask_email_keeps_domain():
    assert mask_email("ada@example.com") == "***@example.com"
    assert mask_email("a@b@example.com") == "***@example.com"
    assert mask_email("no-at-sign") == "no-at-sign"


def test_redact_address_masks_location_fields_only():
    address = {
        "firstName": "Ada",
        "street": "Main Street 1",
        "zipCode": "10115",
        "place": "Berlin",
        "country": "DE",
        "email": "ada@example.com",
    }
    redacted = redact_address(address)

    assert redacted == {
        "firstName": "Ada",
        "street": "*************",
        "zipCode": "*****",
        "place": "******",
        "country": "**",
        "email": "***@example.com",
    }
    assert address["street"] == "Main Street 1"


def test_redact_addresses_handles_missing_lists():
    assert redact_addresses(None) is None
    assert redact_addresses([{"place": "Rome"}]) == [{"place": "****"}]


def test_redaction_is_idempotent():
    address = {"street": "Main Street 1", "email": "ada@example.com", "place": ""}
    once = redact_address(address)
    assert redact_address(once) == once
    assert once["place"] == ""
