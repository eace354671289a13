# Run from project root: streamlit run taskmarket/ui.py
# UI talks to the backend API (auth, quick tasks, my tasks, market, Discord settings). The JWT lives in session state.

import os

import requests
import streamlit as st

# Backend config
API_BASE = os.environ.get("API_BASE", "http://localhost:8000")

st.title("AgenX Task Marketplace")

if "token" not in st.session_state:
    st.session_state.token = None


def _headers() -> dict[str, str]:
    token = st.session_state.get("token")
    return {"Authorization": f"Bearer {token}"} if token else {}


def _error_text(r: requests.Response) -> str:
    try:
        data = r.json()
    except ValueError:
        return r.text[:200]
    return str(data.get("detail") or data.get("error") or data)[:200]


# --- Login / register ---

if not st.session_state.token:
    try:
        requests.get(f"{API_BASE}/health", timeout=5)
    except requests.RequestException:
        st.caption("Backend not reachable. Start the API first.")

    login_tab, register_tab = st.tabs(["Log in", "Register"])
    with login_tab:
        email = st.text_input("Email", key="login_email")
        password = st.text_input("Password", type="password", key="login_password")
        if st.button("Log in", key="login_btn"):
            try:
                r = requests.post(f"{API_BASE}/api/auth/login", json={"email": email, "password": password}, timeout=15)
                if r.ok:
                    st.session_state.token = r.json().get("token")
                    st.rerun()
                else:
                    st.error(f"Login failed: {_error_text(r)}")
            except requests.RequestException as e:
                st.error(f"Request failed: {e}")
    with register_tab:
        name = st.text_input("Name (optional)", key="reg_name")
        reg_email = st.text_input("Email", key="reg_email")
        reg_password = st.text_input("Password (min 6 chars)", type="password", key="reg_password")
        if st.button("Create account", key="register_btn"):
            try:
                r = requests.post(
                    f"{API_BASE}/api/auth/register",
                    json={"email": reg_email, "password": reg_password, "name": name or None},
                    timeout=15,
                )
                if r.ok:
                    st.session_state.token = r.json().get("token")
                    st.rerun()
                else:
                    st.error(f"Registration failed: {_error_text(r)}")
            except requests.RequestException as e:
                st.error(f"Request failed: {e}")
    st.stop()

if st.button("Log out", key="logout_btn"):
    st.session_state.token = None
    st.rerun()

# --- Quick task ---

st.subheader("New task")
prompt = st.text_area("What should the agent do?", key="quick_prompt", height=120)
attachment = st.file_uploader("Attachment (.txt, .md, .csv, .pdf)", type=["txt", "md", "csv", "pdf"])
save_to_drive = st.checkbox("Save result as a document", key="quick_save")
if st.button("Create task", key="quick_btn"):
    attachment_id = None
    try:
        if attachment is not None:
            attachment.seek(0)
            r = requests.post(
                f"{API_BASE}/api/uploads",
                files={"file": (attachment.name, attachment.read())},
                headers=_headers(),
                timeout=30,
            )
            if not r.ok:
                st.error(f"Upload failed: {_error_text(r)}")
                st.stop()
            attachment_id = r.json().get("documentId")
        r = requests.post(
            f"{API_BASE}/api/tasks/quick",
            json={"prompt": prompt, "attachmentId": attachment_id, "saveToDrive": save_to_drive},
            headers=_headers(),
            timeout=60,
        )
        if r.ok:
            data = r.json()
            st.success(f"Task created ({data['inferred']['type']}), id {data['task']['id']}")
        else:
            st.error(f"Create failed: {_error_text(r)}")
    except requests.RequestException as e:
        st.error(f"Request failed: {e}")

# --- My tasks ---

st.divider()
st.subheader("My tasks")
try:
    r = requests.get(f"{API_BASE}/api/tasks", headers=_headers(), timeout=15)
    my_tasks = r.json().get("tasks", []) if r.ok else []
    if r.status_code == 401:
        st.session_state.token = None
        st.rerun()
except requests.RequestException:
    my_tasks = []
    st.caption("Could not load tasks.")
if not my_tasks:
    st.caption("No tasks yet.")
for task in my_tasks:
    label = task.get("title") or (task.get("description") or "")[:60] or task["id"]
    with st.expander(f"[{task['status']}] {label}"):
        st.caption(f"{task['type']} · {task.get('payoutAmount')} {task.get('payoutCurrency')} · {task.get('createdAt')}")
        if task.get("resultText"):
            st.markdown(task["resultText"])
        for p in task.get("payments") or []:
            st.caption(f"Payment {p['status']}: {p['amount']} {p['currency']} {p.get('txHash') or ''}")
        col_run, col_delete = st.columns(2)
        if task["status"] in ("ASSIGNED", "IN_PROGRESS") and col_run.button("Run agent now", key=f"run_{task['id']}"):
            with st.spinner("Agent working..."):
                try:
                    r = requests.post(f"{API_BASE}/api/agent/run", json={"taskId": task["id"]}, timeout=300)
                    if r.ok and "task" in r.json():
                        st.rerun()
                    else:
                        st.error(f"Agent run failed: {_error_text(r)}")
                except requests.RequestException as e:
                    st.error(f"Request failed: {e}")
        if col_delete.button("Delete", key=f"del_{task['id']}"):
            r = requests.delete(f"{API_BASE}/api/tasks/{task['id']}", headers=_headers(), timeout=15)
            if r.ok:
                st.rerun()
            else:
                st.error(f"Delete failed: {_error_text(r)}")

# --- Market ---

st.divider()
st.subheader("Market")
try:
    r = requests.get(f"{API_BASE}/api/market", timeout=15)
    market = r.json().get("tasks", []) if r.ok else []
except requests.RequestException:
    market = []
if not market:
    st.caption("No open tasks.")
for task in market:
    label = task.get("title") or (task.get("description") or "")[:60] or task["id"]
    col_text, col_accept = st.columns([4, 1])
    col_text.write(f"**{label}** · {task['type']} · {task.get('payoutAmount')} {task.get('payoutCurrency')}")
    if col_accept.button("Accept", key=f"accept_{task['id']}"):
        r = requests.post(f"{API_BASE}/api/tasks/{task['id']}/accept", headers=_headers(), timeout=15)
        if r.ok:
            st.success("Task assigned to your agent.")
            st.rerun()
        else:
            st.error(f"Accept failed: {_error_text(r)}")

# --- Discord settings ---

st.divider()
with st.expander("Discord notifications"):
    try:
        r = requests.get(f"{API_BASE}/api/integrations/discord", timeout=10)
        invite = r.json().get("inviteUrl") if r.ok else None
    except requests.RequestException:
        invite = None
    if invite:
        st.markdown(f"[Invite the bot to your server]({invite})")
    try:
        r = requests.get(f"{API_BASE}/api/settings/discord", headers=_headers(), timeout=10)
        current = (r.json().get("discordChannelId") if r.ok else "") or ""
    except requests.RequestException:
        current = ""
    channel_id = st.text_input("Channel id", value=current, key="discord_channel")
    if st.button("Save channel", key="discord_save"):
        r = requests.post(f"{API_BASE}/api/settings/discord", json={"channelId": channel_id}, headers=_headers(), timeout=10)
        if r.ok:
            st.success("Saved.")
        else:
            st.error(f"Save failed: {_error_text(r)}")
    if st.button("Send test message", key="discord_test"):
        r = requests.post(f"{API_BASE}/api/integrations/discord", json={"channelId": channel_id or None}, timeout=15)
        if r.ok:
            st.success("Test message sent.")
        else:
            st.error(f"Test failed: {_error_text(r)}")
