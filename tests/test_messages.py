"""
Tests for message_service.py - one chat per pair of users.
"""

import pytest

from career_findr.services.message_service import MessageService


@pytest.fixture
def service(store):
    return MessageService(store)


class TestChats:

    def test_get_or_create_is_idempotent(self, service, store, student, company):
        first = service.get_or_create_chat(student, company)
        second = service.get_or_create_chat(student, company)

        assert first.id == second.id
        assert store.count("chats") == 1

    def test_pair_is_unordered(self, service, store, student, company):
        first = service.get_or_create_chat(student, company)
        second = service.get_or_create_chat(company, student)

        assert first.id == second.id
        assert store.count("chats") == 1

    def test_chat_with_self_is_rejected(self, service, store, student):
        with pytest.raises(ValueError):
            service.get_or_create_chat(student, student)
        assert store.count("chats") == 0

    def test_new_chat_shape(self, service, student, company):
        chat = service.get_or_create_chat(student, company)

        assert chat.participants == [student.id, company.id]
        assert chat.participants_data[company.id].name == "Acme Corp"
        assert chat.participants_data[student.id].role == "student"
        assert chat.last_message == ""
        assert chat.unread_count == 0

    def test_third_user_gets_own_chat(self, service, store, student, company, make_user):
        other = make_user("institute")
        service.get_or_create_chat(student, company)
        service.get_or_create_chat(student, other)
        assert store.count("chats") == 2

    def test_chat_membership(self, service, student, company, admin):
        chat = service.get_or_create_chat(student, company)
        assert service.get_chat_for_user(chat.id, student.id) is not None
        assert service.get_chat_for_user(chat.id, admin.id) is None
        assert service.get_chat_for_user("missing", student.id) is None


class TestMessages:

    def test_send_updates_last_message(self, service, student, company):
        chat = service.get_or_create_chat(student, company)

        message = service.send_message(chat.id, student.id, "Sam Student", "Hello!")

        assert message.chat_id == chat.id
        assert message.read is False
        refreshed = service.get_chat_for_user(chat.id, company.id)
        assert refreshed.last_message == "Hello!"
        assert refreshed.last_message_time == message.timestamp

    def test_messages_in_order(self, service, student, company):
        chat = service.get_or_create_chat(student, company)
        service.send_message(chat.id, student.id, "Sam", "one")
        service.send_message(chat.id, company.id, "Acme", "two")
        service.send_message(chat.id, student.id, "Sam", "three")

        assert [m.text for m in service.get_messages(chat.id)] == ["one", "two", "three"]

    def test_start_conversation_with_message(self, service, student, company):
        chat, message = service.start_conversation(student, company, "Hi there")

        assert message.text == "Hi there"
        assert message.sender_name == "Sam Student"
        assert len(service.get_messages(chat.id)) == 1

    def test_start_conversation_without_message(self, service, student, company):
        chat, message = service.start_conversation(student, company)
        assert message is None
        assert service.get_messages(chat.id) == []

    def test_user_chats(self, service, student, company, make_user):
        other = make_user("institute")
        service.get_or_create_chat(student, company)
        service.get_or_create_chat(student, other)

        assert len(service.get_user_chats(student.id)) == 2
        assert len(service.get_user_chats(company.id)) == 1
