# streamlit_app.py
import streamlit as st
import streamlit.components.v1 as components
from PIL import ImageColor

from pawsheets.config import get_settings
from pawsheets.embed import to_embed
from pawsheets.errors import NotFound, PawSheetsError, UpstreamFailure, ValidationRefusal
from pawsheets.grid import changed_cells, worksheet_to_frame
from pawsheets.logging_config import setup_logging
from pawsheets.renderer import render_preview_image, render_worksheet
from pawsheets.schemas import Feedback, Theme
from pawsheets.session import EditingSession
from pawsheets.store import HttpStore
from pawsheets.styles import FONT_FAMILIES, SIZE_PRESETS, THEME_PRESETS

setup_logging()
settings = get_settings()

st.set_page_config(page_title="PawSheets", layout="wide")
st.title("PawSheets")
st.write("Edit your worksheet, style the cards, then copy the embed code.")

# -------------------------
# Helpers
# -------------------------
def to_hex(color: str, fallback: str = "#000000") -> str:
    """st.color_picker only takes #rrggbb."""
    try:
        r, g, b = ImageColor.getrgb(color)[:3]
    except ValueError:
        return fallback
    return f"#{r:02x}{g:02x}{b:02x}"


def open_session(api_base: str, user_id: str) -> None:
    old = st.session_state.get("session")
    if old is not None:
        old.close()
    store = HttpStore(api_base)
    st.session_state["store"] = store
    st.session_state["session"] = EditingSession.open(store, user_id=user_id or None, live_updates=False)
    st.session_state["session_key"] = (api_base, user_id)


def run(action, *args) -> None:
    """Run a session edit and surface refusals/failures inline."""
    try:
        action(*args)
    except ValidationRefusal as e:
        st.warning(str(e))
    except PawSheetsError as e:
        st.error(str(e))


# -------------------------
# Sidebar: account & feedback
# -------------------------
with st.sidebar:
    st.header("Account")
    api_base = st.text_input("API base URL", value=settings.api_base)
    user_id = st.text_input("User id", value="public")

    with st.expander("Send feedback"):
        with st.form("feedback", clear_on_submit=True):
            fb_name = st.text_input("Name")
            fb_email = st.text_input("Email")
            fb_message = st.text_area("Message")
            if st.form_submit_button("Submit"):
                try:
                    HttpStore(api_base).add_feedback(Feedback(name=fb_name, email=fb_email, message=fb_message))
                    st.success("Feedback submitted successfully!")
                except PawSheetsError:
                    st.error("Error submitting feedback. Please try again.")

if st.session_state.get("session_key") != (api_base, user_id):
    with st.spinner("Loading worksheet..."):
        try:
            open_session(api_base, user_id)
        except (UpstreamFailure, NotFound) as e:
            st.session_state.pop("session", None)
            st.session_state.pop("session_key", None)
            st.error(f"Could not load worksheet: {e}")
            st.stop()

session: EditingSession = st.session_state["session"]
store: HttpStore = st.session_state["store"]

def open_template(worksheet_id: str) -> None:
    session.close()
    st.session_state["session"] = EditingSession.open(store, worksheet_id=worksheet_id, live_updates=False)


with st.sidebar:
    st.header("Saved templates")
    try:
        templates = store.list_worksheets(user_id or None)
    except PawSheetsError as e:
        templates = []
        st.error(f"Could not load templates: {e}")
    if templates:
        labels = {t.id: f"{t.name or 'Untitled'} ({t.created_at:%Y-%m-%d %H:%M})" for t in templates}
        ids = list(labels)
        picked = st.selectbox(
            "Template", options=ids, format_func=labels.get,
            index=ids.index(session.worksheet.id) if session.worksheet.id in labels else 0,
        )
        t1, t2 = st.columns(2)
        if t1.button("Open") and picked != session.worksheet.id:
            try:
                open_template(picked)
                st.rerun()
            except PawSheetsError as e:
                st.error(str(e))
        if t2.button("Delete"):
            if picked == session.worksheet.id:
                st.warning("Open another template before deleting this one.")
            else:
                run(store.delete_worksheet, picked)
                st.rerun()
    else:
        st.caption("No saved templates yet.")

    new_name = st.text_input("Save as new template")
    if st.button("Save as new") and new_name.strip():
        session.flush()
        try:
            copied = store.copy_worksheet(session.worksheet.id, new_name.strip())
            open_template(copied["id"])
            st.rerun()
        except PawSheetsError as e:
            st.error(str(e))

session = st.session_state["session"]
ws = session.worksheet

if session.last_error:
    st.error(session.last_error)

tab_sheet, tab_cards, tab_embed = st.tabs(["Spreadsheet", "Card Editor", "Embedded Code"])

# -------------------------
# Spreadsheet
# -------------------------
with tab_sheet:
    name = st.text_input("Template name", value=ws.name)
    if name != ws.name:
        run(session.rename, name)

    c1, c2, c3, c4, c5 = st.columns(5)
    if c1.button("Add Row"):
        run(session.add_row)
    if c2.button("Add Column"):
        run(session.add_column)
    with c3:
        del_row = st.number_input("Row to delete", min_value=1, max_value=max(len(ws.rows), 1), value=max(len(ws.rows), 1))
        if st.button("Delete Row"):
            run(session.delete_row, int(del_row) - 1)
    with c4:
        del_col = st.number_input("Column to delete", min_value=1, max_value=max(len(ws.columns), 1), value=max(len(ws.columns), 1))
        if st.button("Delete Column"):
            run(session.delete_column, int(del_col) - 1)
    if c5.button("Save now"):
        session.flush()
        if session.last_error:
            st.error(session.last_error)
        else:
            st.success("Worksheet saved.")

    ws = session.worksheet
    frame = worksheet_to_frame(ws)
    st.caption("Row 'Field Data' holds the field names shown on each card. Column A holds image URLs.")
    edited = st.data_editor(frame, use_container_width=True, key=f"grid-{len(ws.rows)}x{len(ws.columns)}")
    for r, c, value in changed_cells(ws, edited):
        run(session.set_cell, r, c, value)

    st.subheader("Upload image")
    if len(ws.rows) > 1:
        target_row = st.selectbox("Row", options=list(range(2, len(ws.rows) + 1)))
        upload = st.file_uploader("Image file", type=["png", "jpg", "jpeg", "gif", "webp"])
        if upload is not None and st.button("Upload"):
            with st.spinner("Uploading..."):
                try:
                    session.upload_image(int(target_row) - 1, 0, upload.name, upload.getvalue())
                    st.success("Image uploaded.")
                except PawSheetsError as e:
                    st.error(str(e))

# -------------------------
# Card editor
# -------------------------
with tab_cards:
    controls, preview = st.columns([1, 2])
    styles = session.worksheet.styles

    with controls:
        st.markdown("**Layout & Arrangement**")
        layouts = ["top-image", "left-image", "right-image"]
        arrangements = ["column", "row", "grid"]
        layout = st.radio("Layout", layouts, index=layouts.index(styles.layout), horizontal=True)
        arrangement = st.radio("Arrangement", arrangements, index=arrangements.index(styles.card_arrangement), horizontal=True)

        preset_cols = st.columns(len(SIZE_PRESETS))
        for col, preset in zip(preset_cols, SIZE_PRESETS):
            if col.button(preset.capitalize(), type="primary" if styles.size_preset == preset else "secondary"):
                run(session.apply_size_preset, preset)
                st.rerun()

        theme = st.selectbox("Theme", ["-"] + list(THEME_PRESETS))
        if theme != "-" and st.button("Apply theme"):
            run(session.apply_theme, theme)
            st.rerun()

        st.markdown("**Card & Colours**")
        fonts = list(FONT_FAMILIES)
        if styles.font_family not in fonts:
            fonts.append(styles.font_family)
        overrides = {
            "layout": layout,
            "cardArrangement": arrangement,
            "fontFamily": st.selectbox("Font family", fonts, index=fonts.index(styles.font_family)),
            "fontSizePrimary": st.number_input("Font size (values)", 8, 48, styles.font_size_primary),
            "fontSizeSecondary": st.number_input("Font size (labels)", 8, 48, styles.font_size_secondary),
            "textAlign": st.selectbox("Text align", ["left", "center", "right", "justify"],
                                      index=["left", "center", "right", "justify"].index(styles.text_align)),
            "textColor": st.color_picker("Text colour", to_hex(styles.text_color)),
            "backgroundColor": st.color_picker("Background colour", to_hex(styles.background_color, "#ffffff")),
            "borderColor": st.color_picker("Border colour", to_hex(styles.border_color, "#cccccc")),
            "borderWidth": st.number_input("Border width", 0, 20, styles.border_width),
            "borderRadius": st.slider("Border radius", 0, 50, styles.border_radius),
            "padding": st.number_input("Padding", 0, 100, styles.padding),
            "cardShadow": st.checkbox("Shadow", value=styles.card_shadow),
            "imageObjectFit": st.selectbox("Image fit", ["cover", "contain", "fill", "none", "scale-down"],
                                           index=["cover", "contain", "fill", "none", "scale-down"].index(styles.image_object_fit)),
        }

        st.markdown("**Card Button**")
        overrides["cardButtonText"] = st.text_input("Button text", value=styles.card_button_text)
        overrides["cardButtonURL"] = st.text_input("Button URL", value=styles.card_button_url)

        current = styles.to_dict()
        if any(current.get(k) != v for k, v in overrides.items()):
            run(session.update_styles, overrides)

        st.markdown("**Saved themes**")
        try:
            saved = store.list_themes(user_id or None)
        except PawSheetsError as e:
            saved = []
            st.error(f"Could not load themes: {e}")
        if saved:
            picked = st.selectbox("Your themes", saved, format_func=lambda t: t.name)
            if st.button("Apply saved theme"):
                run(session.apply_saved_theme, picked.styles)
                st.rerun()
        theme_name = st.text_input("Save current colours as")
        if st.button("Save theme") and theme_name.strip():
            try:
                store.save_theme(Theme(user_id=user_id or None, name=theme_name.strip(),
                                       styles=session.worksheet.styles.to_dict()))
                st.success("Theme saved.")
            except PawSheetsError as e:
                st.error(str(e))

    with preview:
        tree, markup = render_worksheet(session.worksheet)
        st.markdown("**Live Preview**")
        components.html(markup, height=600, scrolling=True)
        with st.expander("Image preview (PNG)"):
            st.image(render_preview_image(tree), use_container_width=True)

# -------------------------
# Embedded code
# -------------------------
with tab_embed:
    _, markup = render_worksheet(session.worksheet)
    snippets = to_embed(markup, session.worksheet.id or "", settings.host_origin)
    st.markdown("**Embed HTML**")
    st.code(snippets.html_snippet, language="html")
    st.download_button("Download HTML", data=snippets.html_snippet.encode("utf-8"),
                       file_name="cards.html", mime="text/html")
    st.markdown("**Embed IFrame**")
    st.code(snippets.iframe_snippet, language="html")
    if session.save_pending:
        st.info("Changes are still being saved; the iframe shows the last saved version.")
