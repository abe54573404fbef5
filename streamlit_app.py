"""Streamlit entrypoint delegating to the forms overview."""

from importlib import import_module

import streamlit as st

from formflow.logging_utils import create_logger

logger = create_logger(__name__)

HOME_MODULE = "Home"


def main() -> None:
    """Run ``Home.main`` so ``streamlit run streamlit_app.py`` shows the overview."""

    try:
        entry = getattr(import_module(HOME_MODULE), "main", None)
    except ModuleNotFoundError:
        logger.error("Module %s could not be imported", HOME_MODULE)
        st.error("Forms overview module not found.")
        return

    if entry is None:
        st.error("Forms overview is missing a main() function.")
        return
    entry()


if __name__ == "__main__":
    main()
