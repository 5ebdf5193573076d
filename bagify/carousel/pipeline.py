"""Four-frame carousel generation over remote storage folders.

Control-flow model:
    1. List the bag library, reference photos, and product folders.
    2. Randomly select one bag and two distinct reference photos.
    3. Download the five source images concurrently.
    4. Generate the frames one after another through the orchestrator.
    5. Upload frames plus a JSON metadata document to the output folder.

Frame plan:
    Reference-photo frames use the full fallback chain (edit API first). Product
    frames need two-image composition and go straight to the secondary provider.
    The selected bag is always the secondary image.

Error handling strategy:
    - Missing source files raise `ValidationError` (HTTP 400).
    - A frame whose provider chain fails aborts the carousel before any upload;
      the frame's final provider error is raised as `GatewayError`.
    - Storage failures propagate as `StorageError`.
"""

import asyncio
import json
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from bagify.carousel.hashtags import extract_bag_name, generate_hashtags
from bagify.core.errors import GatewayError, ValidationError
from bagify.core.orchestrator import GenerationOrchestrator


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameSpec:
    """One carousel frame: which source image, which prompt, which chain.

    `fallback_prompt` is sent to Provider B when the edit API fails.
    """

    source: str
    prompt: str
    use_primary: bool
    fallback_prompt: str | None = None


FRAME_PLAN = (
    FrameSpec(
        "reference_1",
        "Replace the handbag with the target luxury bag. Keep the woman identical.",
        True,
        fallback_prompt="Replace handbag with target bag. Keep woman identical.",
    ),
    FrameSpec("product_angled", "Replace the bag with the target bag. Professional angled view.", False),
    FrameSpec("product_front", "Replace the bag with the target bag. Professional front view.", False),
    FrameSpec(
        "reference_2",
        "Replace the handbag with target bag. Different pose.",
        True,
        fallback_prompt="Replace handbag. Different pose.",
    ),
)


@dataclass(frozen=True)
class CarouselResult:
    carousel_id: str
    target_bag: str
    bag_name: str
    hashtags: str
    frame_ids: list
    metadata_id: str

    @property
    def frames_count(self) -> int:
        return len(self.frame_ids)


class CarouselPipeline:
    """Builds and stores one carousel per `run` call.

    Args:
        orchestrator: Provider chain used for each frame.
        storage: Object exposing async `list_files`, `download`, `upload`.
        folder_ids: Folder ids keyed by `bag_library`, `reference_photos`,
            `product_angled`, `product_front`, `generated_carousels`.
        rng: Random source for bag/reference selection.
        clock: Returns epoch seconds; used for the carousel id.
    """

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        storage,
        folder_ids: dict,
        rng: random.Random | None = None,
        clock=time.time,
    ) -> None:
        self.orchestrator = orchestrator
        self.storage = storage
        self.folder_ids = folder_ids
        self.rng = rng or random.Random()
        self.clock = clock

    async def run(self) -> CarouselResult:
        logger.info("Starting carousel generation")

        bags = await self.storage.list_files(self.folder_ids["bag_library"])
        if not bags:
            raise ValidationError("No bags found")

        references = await self.storage.list_files(self.folder_ids["reference_photos"])
        if len(references) < 2:
            raise ValidationError("Need at least 2 reference photos")

        angled = await self.storage.list_files(self.folder_ids["product_angled"])
        front = await self.storage.list_files(self.folder_ids["product_front"])
        if not angled or not front:
            raise ValidationError("Missing product images")

        bag = self.rng.choice(bags)
        reference_1, reference_2 = self.rng.sample(references, 2)
        logger.info(
            "Selected bag=%s ref1=%s ref2=%s",
            bag["name"],
            reference_1["name"],
            reference_2["name"],
        )

        sources = {
            "bag": bag,
            "reference_1": reference_1,
            "reference_2": reference_2,
            "product_angled": angled[0],
            "product_front": front[0],
        }
        contents = await asyncio.gather(
            *(self.storage.download(item["id"]) for item in sources.values())
        )
        images = dict(zip(sources, contents))
        logger.info("Downloaded %d source images", len(images))

        frames = []
        for number, frame_spec in enumerate(FRAME_PLAN, start=1):
            result = await self.orchestrator.generate(
                images[frame_spec.source],
                images["bag"],
                frame_spec.prompt,
                use_primary=frame_spec.use_primary,
                fallback_prompt=frame_spec.fallback_prompt,
            )
            if not result.success:
                raise GatewayError(
                    f"Frame {number} failed: {result.error_message}",
                    status_code=result.status_code,
                )
            logger.info("Frame %d done via %s", number, result.method_used.value)
            frames.append(result.image)

        carousel_id = f"carousel_{int(self.clock() * 1000)}"
        bag_name = extract_bag_name(bag["name"])
        hashtags = generate_hashtags(bag_name)
        output_folder = self.folder_ids["generated_carousels"]

        frame_ids = []
        for number, frame in enumerate(frames, start=1):
            frame_ids.append(
                await self.storage.upload(
                    f"{carousel_id}_frame{number}.png",
                    frame,
                    "image/png",
                    output_folder,
                )
            )

        metadata = {
            "carousel_id": carousel_id,
            "target_bag": bag["name"],
            "bag_name": bag_name,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "hashtags": hashtags,
            "status": "ready_for_posting",
        }
        metadata_id = await self.storage.upload(
            f"{carousel_id}_metadata.json",
            json.dumps(metadata, indent=2).encode("utf-8"),
            "application/json",
            output_folder,
        )

        logger.info("Carousel complete: %s", carousel_id)
        return CarouselResult(
            carousel_id=carousel_id,
            target_bag=bag["name"],
            bag_name=bag_name,
            hashtags=hashtags,
            frame_ids=frame_ids,
            metadata_id=metadata_id,
        )
