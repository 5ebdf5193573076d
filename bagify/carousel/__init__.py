"""Carousel generation package.

Scope:
    Selects source photos from remote storage folders, generates four frames
    through the provider-fallback orchestrator, and stores the frames with a
    metadata document for posting.

Module split:
    - `drive`: Google Drive folder storage.
    - `hashtags`: caption hashtag templating.
    - `pipeline`: frame plan and end-to-end flow.
"""
