# Core: session, frame pipeline, model loading, inference, export
