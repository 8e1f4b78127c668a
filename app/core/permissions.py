"""
Permission catalogue and the default grants handed to each role.

Permission names are snapshotted into the access token at login, so changing a
user's grants only takes effect once they log in again or refresh their token.
"""

from typing import Dict, List, Tuple

from app.db.models.user import UserRole

CAN_CREATE_USER = "can_create_user"
CAN_DEFINE_USER_PERMISSIONS = "can_define_user_permissions"
CAN_CREATE_CASE = "can_create_case"
CAN_EDIT_CASE = "can_edit_case"
CAN_DELETE_CASE = "can_delete_case"
CAN_ASSIGN_CASE_MEMBERS = "can_assign_case_members"
CAN_VIEW_ALL_CASES = "can_view_all_cases"
CAN_MANAGE_CLIENTS = "can_manage_clients"
CAN_INVITE_CLIENTS = "can_invite_clients"
CAN_SEND_MESSAGES = "can_send_messages"
CAN_VIEW_MESSAGE_HISTORY = "can_view_message_history"
CAN_MARK_MESSAGE_AS_VIEWED = "can_mark_message_as_viewed"
CAN_RECEIVE_MESSAGE_ALERTS = "can_receive_message_alerts"
CAN_CHANGE_PASSWORD = "can_change_password"
CAN_EDIT_PERSONAL_PROFILE = "can_edit_personal_profile"

PERMISSIONS: List[Tuple[str, str]] = [
    # Users
    (CAN_CREATE_USER, "Create new office users (lawyers or staff)."),
    (CAN_DEFINE_USER_PERMISSIONS, "Define permissions per user."),
    # Cases
    (CAN_CREATE_CASE, "Create new cases."),
    (CAN_EDIT_CASE, "Edit case data."),
    (CAN_DELETE_CASE, "Delete cases."),
    (CAN_ASSIGN_CASE_MEMBERS, "Assign lawyers and clients to cases."),
    (CAN_VIEW_ALL_CASES, "View every case of the office."),
    # Clients
    (CAN_MANAGE_CLIENTS, "Create, edit and remove client records."),
    (CAN_INVITE_CLIENTS, "Invite clients to access a case."),
    # Communication
    (CAN_SEND_MESSAGES, "Send messages in case threads."),
    (CAN_VIEW_MESSAGE_HISTORY, "View message history per case."),
    (CAN_MARK_MESSAGE_AS_VIEWED, "Mark messages as viewed."),
    (CAN_RECEIVE_MESSAGE_ALERTS, "Receive e-mail alerts for unread messages."),
    # Account
    (CAN_CHANGE_PASSWORD, "Change own password."),
    (CAN_EDIT_PERSONAL_PROFILE, "Edit own profile."),
]

ALL_PERMISSION_NAMES: List[str] = [name for name, _ in PERMISSIONS]

_LAWYER_DEFAULTS = [
    CAN_CREATE_CASE,
    CAN_EDIT_CASE,
    CAN_DELETE_CASE,
    CAN_ASSIGN_CASE_MEMBERS,
    CAN_VIEW_ALL_CASES,
    CAN_MANAGE_CLIENTS,
    CAN_INVITE_CLIENTS,
    CAN_SEND_MESSAGES,
    CAN_VIEW_MESSAGE_HISTORY,
    CAN_MARK_MESSAGE_AS_VIEWED,
    CAN_RECEIVE_MESSAGE_ALERTS,
    CAN_CHANGE_PASSWORD,
    CAN_EDIT_PERSONAL_PROFILE,
]

_CLIENT_DEFAULTS = [
    CAN_SEND_MESSAGES,
    CAN_VIEW_MESSAGE_HISTORY,
    CAN_MARK_MESSAGE_AS_VIEWED,
    CAN_RECEIVE_MESSAGE_ALERTS,
    CAN_CHANGE_PASSWORD,
    CAN_EDIT_PERSONAL_PROFILE,
]

DEFAULT_ROLE_PERMISSIONS: Dict[UserRole, List[str]] = {
    UserRole.admin: ALL_PERMISSION_NAMES,
    UserRole.lawyer: _LAWYER_DEFAULTS,
    UserRole.client: _CLIENT_DEFAULTS,
}
