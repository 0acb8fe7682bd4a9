"""HTTP trigger, persistence and queue processing for the submission worker."""
