"""Tests for Evolution API payload parsing."""

import pytest

from inboxly.domain.errors import ParseError
from inboxly.whatsapp import evolution_adapter
from inboxly.whatsapp.models import ConnectionStateChange, NewMessage, RejectedEntry, StatusUpdate


def _upsert(message: dict, *, event: str = "messages.upsert", **key_overrides) -> dict:
    key = {"id": "EVO1", "remoteJid": "77011234567@s.whatsapp.net", "fromMe": False}
    key.update(key_overrides)
    return {
        "event": event,
        "instance": "sales-1",
        "data": {
            "key": key,
            "pushName": "Динара",
            "message": message,
            "messageTimestamp": 1700000000,
        },
    }


class TestEventName:
    @pytest.mark.parametrize(
        "raw", ["messages.upsert", "MESSAGES_UPSERT", "Messages.Upsert", " messages.upsert "]
    )
    def test_normalized(self, raw):
        assert evolution_adapter.normalize_event_name(raw) == "MESSAGES_UPSERT"

    def test_non_string(self):
        assert evolution_adapter.normalize_event_name(None) == ""


class TestUpsert:
    def test_conversation(self):
        [event] = evolution_adapter.parse(_upsert({"conversation": "Добрый день"}))

        assert isinstance(event, NewMessage)
        assert event.provider_message_id == "EVO1"
        assert event.chat_id == "77011234567@s.whatsapp.net"
        assert event.direction == "incoming"
        assert event.body.text == "Добрый день"
        assert event.sender_display_name == "Динара"
        assert event.chat_name == "Динара"
        assert event.instance_id == "sales-1"
        assert event.provider == "evolution"

    def test_v1_event_name(self):
        [event] = evolution_adapter.parse(_upsert({"conversation": "hi"}, event="MESSAGES_UPSERT"))
        assert event.body.text == "hi"

    def test_extended_text(self):
        [event] = evolution_adapter.parse(_upsert({"extendedTextMessage": {"text": "link"}}))
        assert event.body.text == "link"

    def test_from_me_is_outgoing_without_chat_name(self):
        [event] = evolution_adapter.parse(_upsert({"conversation": "ok"}, fromMe=True))
        assert event.direction == "outgoing"
        assert event.chat_name is None

    def test_group_push_name_does_not_name_chat(self):
        [event] = evolution_adapter.parse(
            _upsert({"conversation": "всем привет"}, remoteJid="120363025@g.us")
        )
        assert event.chat_type == "group"
        assert event.chat_name is None
        assert event.sender_display_name == "Динара"

    def test_data_list(self):
        payload = _upsert({"conversation": "one"})
        second = {
            "key": {"id": "EVO2", "remoteJid": "77011234567@s.whatsapp.net", "fromMe": False},
            "message": {"conversation": "two"},
        }
        payload["data"] = [payload["data"], second]
        events = evolution_adapter.parse(payload)
        assert [e.provider_message_id for e in events] == ["EVO1", "EVO2"]

    def test_missing_key_id_raises(self):
        payload = _upsert({"conversation": "x"})
        del payload["data"]["key"]["id"]
        with pytest.raises(ParseError):
            evolution_adapter.parse(payload)

    def test_missing_remote_jid_raises(self):
        payload = _upsert({"conversation": "x"})
        del payload["data"]["key"]["remoteJid"]
        with pytest.raises(ParseError):
            evolution_adapter.parse(payload)

    def test_upsert_without_data_raises(self):
        with pytest.raises(ParseError):
            evolution_adapter.parse({"event": "messages.upsert"})

    def test_bad_list_entry_keeps_valid_siblings(self):
        payload = _upsert({"conversation": "one"})
        broken = {"key": {"remoteJid": "77011234567@s.whatsapp.net"}, "message": {}}
        payload["data"] = [payload["data"], broken, "oops"]
        good, missing_id, not_object = evolution_adapter.parse(payload)
        assert isinstance(good, NewMessage)
        assert good.provider_message_id == "EVO1"
        assert missing_id == RejectedEntry(provider="evolution", reason="missing key.id", index=1)
        assert not_object.reason == "data entry is not an object"

    def test_key_not_an_object_raises(self):
        payload = _upsert({"conversation": "x"})
        payload["data"]["key"] = "oops"
        with pytest.raises(ParseError, match="key is not an object"):
            evolution_adapter.parse(payload)

    def test_message_not_an_object_raises(self):
        payload = _upsert({"conversation": "x"})
        payload["data"]["message"] = ["oops"]
        with pytest.raises(ParseError, match="message is not an object"):
            evolution_adapter.parse(payload)


class TestMedia:
    def test_image_with_caption(self):
        message = {"imageMessage": {"url": "https://mmg/1.enc", "caption": "чек"}}
        [event] = evolution_adapter.parse(_upsert(message))
        assert event.body.text == "чек"
        assert event.body.media.media_type == "image"
        assert event.body.media.url == "https://mmg/1.enc"

    def test_audio_placeholder_and_media_url_fallback(self):
        message = {"audioMessage": {}, "mediaUrl": "https://s3/voice.ogg"}
        [event] = evolution_adapter.parse(_upsert(message))
        assert event.body.text == "[Голосовое сообщение]"
        assert event.body.media.url == "https://s3/voice.ogg"

    def test_data_level_media_url(self):
        payload = _upsert({"videoMessage": {}})
        payload["data"]["mediaUrl"] = "https://s3/v.mp4"
        [event] = evolution_adapter.parse(payload)
        assert event.body.media.url == "https://s3/v.mp4"
        assert event.body.text == "[Видео]"

    def test_document_file_name(self):
        message = {"documentMessage": {"url": "https://mmg/d", "fileName": "invoice.pdf"}}
        [event] = evolution_adapter.parse(_upsert(message))
        assert event.body.text == "invoice.pdf"
        assert event.body.media.filename == "invoice.pdf"

    def test_document_with_caption(self):
        message = {
            "documentWithCaptionMessage": {
                "message": {
                    "documentMessage": {
                        "url": "https://mmg/d2",
                        "fileName": "price.xlsx",
                        "caption": "прайс",
                    }
                }
            }
        }
        [event] = evolution_adapter.parse(_upsert(message))
        assert event.body.text == "прайс"
        assert event.body.media.media_type == "document"


class TestUpdate:
    def _update(self, data: dict) -> dict:
        return {"event": "messages.update", "instance": "sales-1", "data": data}

    @pytest.mark.parametrize(
        "raw,expected",
        [(0, "failed"), (1, "sent"), (2, "delivered"), (3, "read"), (4, "sent")],
    )
    def test_numeric_status(self, raw, expected):
        [event] = evolution_adapter.parse(
            self._update({"key": {"id": "EVO1"}, "update": {"status": raw}})
        )
        assert isinstance(event, StatusUpdate)
        assert event.new_status == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("ERROR", "failed"),
            ("PENDING", "sent"),
            ("SERVER_ACK", "sent"),
            ("DELIVERY_ACK", "delivered"),
            ("READ", "read"),
            ("PLAYED", "read"),
        ],
    )
    def test_named_status(self, raw, expected):
        [event] = evolution_adapter.parse(self._update({"keyId": "EVO1", "status": raw}))
        assert event.provider_message_id == "EVO1"
        assert event.new_status == expected

    def test_unknown_named_status_ignored(self):
        assert evolution_adapter.parse(self._update({"keyId": "EVO1", "status": "DELETED"})) == []

    def test_list_of_updates_with_bad_entry(self):
        payload = self._update([{"keyId": "EVO1", "status": "READ"}, 7])
        update, rejected = evolution_adapter.parse(payload)
        assert update.new_status == "read"
        assert isinstance(rejected, RejectedEntry)
        assert rejected.index == 1

    def test_list_status_ignored(self):
        assert evolution_adapter.parse(self._update({"keyId": "EVO1", "status": ["READ"]})) == []


class TestConnection:
    def test_open_with_phone(self):
        payload = {
            "event": "connection.update",
            "instance": "sales-1",
            "data": {"state": "open", "wuid": "77001112233@s.whatsapp.net"},
        }
        [event] = evolution_adapter.parse(payload)
        assert isinstance(event, ConnectionStateChange)
        assert event.state == "open"
        assert event.phone_number == "77001112233"
        assert event.instance_id == "sales-1"

    def test_close_is_disconnected(self):
        payload = {"event": "CONNECTION_UPDATE", "instance": "sales-1", "data": {"state": "close"}}
        [event] = evolution_adapter.parse(payload)
        assert event.state == "disconnected"
        assert event.phone_number is None

    def test_qrcode(self):
        payload = {
            "event": "qrcode.updated",
            "instance": "sales-1",
            "data": {"qrcode": {"base64": "data:image/png;base64,AAAA"}},
        }
        [event] = evolution_adapter.parse(payload)
        assert event.state == "qr"
        assert event.qr_code == "data:image/png;base64,AAAA"


class TestShape:
    def test_missing_event_raises(self):
        with pytest.raises(ParseError):
            evolution_adapter.parse({"data": {}})

    def test_unknown_event_yields_nothing(self):
        assert evolution_adapter.parse({"event": "presence.update", "data": {}}) == []

    def test_webhook_type_label(self):
        assert evolution_adapter.webhook_type({"event": "messages.upsert"}) == "MESSAGES_UPSERT"
