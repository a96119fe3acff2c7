"""Gradio UI for InstructionGen."""

import logging

import gradio as gr

from instructiongen.core.config import config
from instructiongen.core.session import AnalysisSession

from .handlers import (
    add_editions,
    analyze,
    remove_edition,
    remove_original,
    reset_all,
    upload_original,
)

logger = logging.getLogger(__name__)


def _edition_upload_state(session: AnalysisSession) -> dict:
    return gr.update(interactive=session.original is not None)


def create_ui() -> gr.Blocks:
    """Create the Gradio UI.

    Returns:
        Gradio Blocks app
    """
    app = gr.Blocks(title="InstructionGen")

    with app:
        # Session state - one instance per user
        ui_state = gr.State(AnalysisSession())

        gr.Markdown(
            """
            # InstructionGen
            ### Describe an original photo and get edit instructions for each edition
            """
        )

        with gr.Row():
            with gr.Column(scale=1):
                original_input = gr.Image(
                    label="Original Photo",
                    type="filepath",
                    sources=["upload"],
                    height=300,
                )
                editions_input = gr.File(
                    label="Add Editions",
                    file_count="multiple",
                    file_types=["image"],
                    type="filepath",
                    interactive=False,
                )

                with gr.Row():
                    edition_selector = gr.Dropdown(
                        label="Edition",
                        choices=[],
                        value=None,
                        scale=3,
                    )
                    remove_edition_btn = gr.Button("Remove", size="sm", scale=1)

                with gr.Row():
                    analyze_btn = gr.Button(
                        "Generate Instructions", variant="primary", interactive=False
                    )
                    reset_btn = gr.Button("Reset All", variant="secondary")

                status_output = gr.Markdown("Upload the original photo to get started.")

            with gr.Column(scale=2):
                gallery = gr.Gallery(
                    label="Images",
                    columns=4,
                    height="auto",
                    object_fit="contain",
                )
                results_output = gr.Markdown(label="Results", show_copy_button=True)

        view_outputs = [
            gallery,
            edition_selector,
            status_output,
            results_output,
            analyze_btn,
            ui_state,
        ]

        # Original upload / removal
        original_input.upload(
            fn=upload_original,
            inputs=[original_input, ui_state],
            outputs=view_outputs,
        ).then(fn=_edition_upload_state, inputs=[ui_state], outputs=[editions_input])

        original_input.clear(
            fn=remove_original,
            inputs=[ui_state],
            outputs=view_outputs,
        ).then(fn=_edition_upload_state, inputs=[ui_state], outputs=[editions_input])

        # Editions are added, then the picker is cleared for the next batch
        editions_input.upload(
            fn=add_editions,
            inputs=[editions_input, ui_state],
            outputs=view_outputs,
        ).then(fn=lambda: None, outputs=[editions_input])

        remove_edition_btn.click(
            fn=remove_edition,
            inputs=[edition_selector, ui_state],
            outputs=view_outputs,
        )

        analyze_btn.click(
            fn=analyze,
            inputs=[ui_state],
            outputs=view_outputs,
        )

        reset_btn.click(
            fn=reset_all,
            inputs=[ui_state],
            outputs=[original_input, editions_input, *view_outputs],
        ).then(fn=_edition_upload_state, inputs=[ui_state], outputs=[editions_input])

    return app


def main():
    """Main entry point for the application."""
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting InstructionGen UI...")
    logger.info(f"Configuration: {config.model_dump(exclude={'gemini_api_key'})}")

    if not config.gemini_api_key:
        logger.warning("No Gemini API key configured; analysis will fail until one is set.")

    app = create_ui()

    logger.info(f"Launching Gradio UI on {config.gradio_server_name}:{config.gradio_server_port}")

    app.launch(
        server_name=config.gradio_server_name,
        server_port=config.gradio_server_port,
        share=config.gradio_share,
        show_error=True,
        inbrowser=False,
    )


if __name__ == "__main__":
    main()
