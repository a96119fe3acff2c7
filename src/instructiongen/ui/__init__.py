"""Gradio web UI for InstructionGen."""
