from types import SimpleNamespace
from uuid import uuid4

from chatbot_engine.services.message_service import get_conversation_history, list_messages, save_message


class TestSaveMessage:
    def test_adds_and_flushes(self, db_session):
        conversation_id, chatbot_id = uuid4(), uuid4()

        message = save_message(db_session, conversation_id, chatbot_id, "incoming", "hi", status="sent")

        assert message.id is not None
        assert message.conversation_id == conversation_id
        assert message.direction == "incoming"
        assert message.timestamp is not None
        db_session.add.assert_called_once_with(message)
        db_session.flush.assert_called_once()


class TestHistory:
    def test_newest_rows_returned_oldest_first(self, db_session):
        newest_first = [SimpleNamespace(content="third"), SimpleNamespace(content="second")]
        query = db_session.query.return_value.filter.return_value
        query.order_by.return_value.limit.return_value.all.return_value = newest_first

        rows = get_conversation_history(db_session, uuid4(), limit=2)

        assert [row.content for row in rows] == ["second", "third"]
        query.order_by.return_value.limit.assert_called_once_with(2)

    def test_zero_window_skips_query(self, db_session):
        assert get_conversation_history(db_session, uuid4(), limit=0) == []
        db_session.query.assert_not_called()


class TestListMessages:
    def test_page_offset(self, db_session):
        rows = [SimpleNamespace(content="hello")]
        ordered = db_session.query.return_value.filter.return_value.order_by.return_value
        ordered.offset.return_value.limit.return_value.all.return_value = rows

        result = list_messages(db_session, uuid4(), page=3, limit=50)

        assert result == rows
        ordered.offset.assert_called_once_with(100)
        ordered.offset.return_value.limit.assert_called_once_with(50)
