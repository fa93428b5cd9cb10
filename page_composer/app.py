import sys
import time
from pathlib import Path

import streamlit as st
import streamlit.components.v1 as components

# Ensure project root is on sys.path so absolute imports work when run via `streamlit run page_composer/app.py`
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from page_composer.composer import ComposerClient
from page_composer.config import ComposerConfig, Settings, SettingsStore
from page_composer.dispatch import QueueDispatcher
from page_composer.errors import ComposerError, SettingsPersistFailed
from page_composer.orchestrator import create_orchestrator
from page_composer.session import RenderMode
from page_composer.surface import MemorySurface, anchor_targets
from page_composer.template import render_error_page


st.set_page_config(page_title="Page Composer", layout="wide")

POLL_INTERVAL = 0.4
PAGE_HEIGHT = 900
CONNECTION_TEST_TIMEOUT = 10.0


def get_runtime():
    """Per-session orchestrator, surface and UI work queue."""
    if "orchestrator" not in st.session_state:
        surface = MemorySurface()
        dispatcher = QueueDispatcher()
        store = SettingsStore()
        st.session_state["surface"] = surface
        st.session_state["dispatcher"] = dispatcher
        st.session_state["orchestrator"] = create_orchestrator(surface, dispatcher, store)
        st.session_state["shown_location"] = ""
    return (
        st.session_state["orchestrator"],
        st.session_state["surface"],
        st.session_state["dispatcher"],
    )


def sync_location(surface: MemorySurface) -> None:
    # must run before the URL widget is created
    if surface.location and surface.location != st.session_state.get("shown_location"):
        st.session_state["url_input"] = surface.location
        st.session_state["shown_location"] = surface.location


def render_settings(orchestrator, dispatcher: QueueDispatcher) -> None:
    st.sidebar.header("LLM Settings")
    current = orchestrator.settings_snapshot()

    base_url = st.sidebar.text_input(
        "Base URL",
        value=current.base_url,
        placeholder="https://api.openai.com",
        help="Any OpenAI-compatible endpoint, e.g. http://localhost:1234/v1 for LM Studio",
    )
    model = st.sidebar.text_input(
        "Model",
        value=current.model,
        placeholder="gpt-4o-mini, llama3, mistral-nemo...",
    )
    api_key = st.sidebar.text_input("API Key", value=current.api_key, type="password")
    prefer = st.sidebar.checkbox(
        "Use composer by default when pressing Enter", value=current.prefer_composed
    )

    if st.sidebar.button("🔍 Test connection", help="List the models the endpoint serves"):
        with st.sidebar:
            if not base_url.strip():
                st.error("❌ Enter a base URL first")
            else:
                with st.spinner("Contacting endpoint..."):
                    client = ComposerClient(
                        ComposerConfig(
                            base_url=base_url.strip(),
                            model=model.strip(),
                            api_key=api_key.strip(),
                            timeout=CONNECTION_TEST_TIMEOUT,
                        )
                    )
                    try:
                        names = client.list_models()
                    except ComposerError as e:
                        st.error(f"❌ Connection failed: {e}")
                    else:
                        st.success("✅ Connected")
                        st.info(f"Models available: {len(names)}")
                        for name in names[:5]:
                            st.text(f"  • {name}")
                    finally:
                        client.close()

    if st.sidebar.button("💾 Save settings"):
        updated = Settings(
            base_url=base_url, model=model, api_key=api_key, prefer_composed=prefer
        )
        try:
            orchestrator.update_settings(updated)
        except SettingsPersistFailed as e:
            st.sidebar.warning(f"Settings applied for this session but not saved: {e}")
        else:
            st.sidebar.success("Settings saved")
        dispatcher.drain()


def render_page(surface: MemorySurface) -> None:
    if surface.error is not None:
        title, message = surface.error
        components.html(render_error_page(title, message), height=240)
    elif surface.html:
        components.html(surface.html, height=PAGE_HEIGHT, scrolling=True)


def render_link_follower(surface: MemorySurface, busy: bool) -> None:
    targets = anchor_targets(surface.html) if surface.error is None else []
    if not targets:
        return
    labels = [f"{text} ({href})" for text, href in targets]
    choice = st.selectbox(
        "Follow a link", options=range(len(targets)), format_func=lambda i: labels[i]
    )
    if st.button("➡️ Open link", disabled=busy):
        if not surface.navigate(targets[choice][1]):
            st.warning("That link cannot be opened here")


def mark_submitted() -> None:
    st.session_state["submitted"] = True


def main():
    orchestrator, surface, dispatcher = get_runtime()
    dispatcher.drain()
    sync_location(surface)

    st.title("Page Composer")
    st.caption("Reader view for any page, or an LLM-composed rendition of it")

    render_settings(orchestrator, dispatcher)

    url = st.text_input(
        "URL",
        key="url_input",
        placeholder="Paste a URL, e.g. https://example.com",
        on_change=mark_submitted,
    )
    col_reader, col_compose, _ = st.columns([1, 1, 4])
    with col_reader:
        reader_clicked = st.button("Reader Mode", help="Render using the built-in reader")
    with col_compose:
        available = orchestrator.composer_available()
        compose_clicked = st.button(
            "Compose with LLM",
            type="primary",
            disabled=not available,
            help=(
                "Generate a composed page via the configured LLM"
                if available
                else "Configure an OpenAI-compatible endpoint to enable"
            ),
        )

    submitted = st.session_state.pop("submitted", False)
    if reader_clicked:
        orchestrator.request(url, RenderMode.TEMPLATE)
    elif compose_clicked:
        orchestrator.request(url, RenderMode.COMPOSED)
    elif submitted:
        orchestrator.submit(url)
    dispatcher.drain()

    busy = orchestrator.busy()
    if busy or surface.busy:
        st.info(f"⏳ {surface.status}")
    elif surface.error is not None:
        st.error(surface.status)
    else:
        st.caption(surface.status)

    render_page(surface)
    render_link_follower(surface, busy)

    if orchestrator.busy() or dispatcher.pending():
        time.sleep(POLL_INTERVAL)
        st.rerun()


if __name__ == "__main__":
    main()
