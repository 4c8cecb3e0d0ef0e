# REST Lens - Evaluation Action Package
#
# This package contains the pipeline that evaluates API specification
# files with REST Lens from a GitHub Actions runner. Each stage is in its
# own file following the one-stage-per-file layout.
#
# The pipeline is orchestrated by evaluation_pipeline_main.py. It reads the
# action inputs and event payload, calls the REST Lens API (upload, poll,
# PR feedback), and writes back to the runner (annotations, outputs, exit
# status).
#
# Stage flow:
#   1. Upload & Evaluate (per file) -> 2. Evaluate Spec Files (batch)
#   -> 3. Apply Thresholds -> 4. Post PR Feedback (pull requests only)
