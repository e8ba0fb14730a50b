#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Invoke Amazon Nova Canvas (text to image) on Bedrock.

Canvas isn't conversational: phrase the prompt like an image caption and put
exclusions in the negative prompt instead of using "no"/"without".

Images are written to <output>/<request-id>-<n>.png.
See: https://docs.aws.amazon.com/nova/latest/userguide/image-gen-req-resp-structure.html
"""

import argparse
import json
import os
import sys
from dataclasses import dataclass
from typing import List, Optional

from bedrock_kit.config import add_connection_arguments, settings_from_args
from bedrock_kit.decode import DecodedResponse, decode_canvas_response
from bedrock_kit.errors import BedrockKitError
from bedrock_kit.tracing import LOG, preview, setup_logging
from bedrock_kit.transport import BedrockClient

MODEL_ID = "amazon.nova-canvas-v1:0"
QUALITIES = ("standard", "premium")


@dataclass(frozen=True)
class ImageGenerationConfig:
    number_of_images: Optional[int] = None  # 1-5
    width: Optional[int] = None
    height: Optional[int] = None
    cfg_scale: Optional[float] = None  # 1.1-10
    seed: Optional[int] = None
    quality: Optional[str] = None

    def __post_init__(self):
        if self.number_of_images is not None and not 1 <= self.number_of_images <= 5:
            raise ValueError("number of images must be between 1 and 5")
        if self.cfg_scale is not None and not 1.1 <= self.cfg_scale <= 10:
            raise ValueError("cfg scale must be between 1.1 and 10")
        if self.quality is not None and self.quality not in QUALITIES:
            raise ValueError(f"quality must be one of {', '.join(QUALITIES)}")

    def to_wire(self) -> dict:
        fields = (
            ("numberOfImages", self.number_of_images),
            ("width", self.width),
            ("height", self.height),
            ("cfgScale", self.cfg_scale),
            ("seed", self.seed),
            ("quality", self.quality),
        )
        return {key: value for key, value in fields if value is not None}


def build_canvas_request(
    prompt: str,
    negative_prompt: Optional[str] = None,
    generation_config: Optional[ImageGenerationConfig] = None,
) -> dict:
    params = {"text": prompt}
    if negative_prompt:
        params["negativeText"] = negative_prompt
    body = {"taskType": "TEXT_IMAGE", "textToImageParams": params}
    config = generation_config.to_wire() if generation_config else {}
    if config:
        body["imageGenerationConfig"] = config
    return body


def text_to_image(
    client: BedrockClient,
    prompt: str,
    output_dir: str,
    negative_prompt: Optional[str] = None,
    generation_config: Optional[ImageGenerationConfig] = None,
) -> DecodedResponse:
    body = build_canvas_request(prompt, negative_prompt, generation_config)
    LOG.debug("model-id: %s", MODEL_ID)
    LOG.debug("%s", json.dumps(body))

    raw = client.invoke_model(MODEL_ID, body)
    LOG.debug("%s", preview(raw.body.decode("utf-8", errors="replace"), edge=50))
    base_path = os.path.join(output_dir, f"{raw.request_id}-")
    return decode_canvas_response(raw.body, base_path, request_id=raw.request_id)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        description=f"Generate images with Amazon Nova Canvas ({MODEL_ID})."
    )
    parser.add_argument("prompt", help="Image description, written like a caption")
    parser.add_argument("-n", "--negative", help="What the image should not contain")
    parser.add_argument("-o", "--output", default="./", help="Output directory")
    parser.add_argument("--number-of-images", type=int, help="Images to generate (1-5)")
    parser.add_argument("--width", type=int, help="Image width in pixels")
    parser.add_argument("--height", type=int, help="Image height in pixels")
    parser.add_argument("--cfg-scale", type=float, help="Prompt adherence (1.1-10)")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--quality", choices=QUALITIES, help="Image quality")
    add_connection_arguments(parser)
    args = parser.parse_args(argv)
    if args.debug:
        args.verbose = max(args.verbose, 2)
    setup_logging(args.verbose)

    try:
        generation_config = ImageGenerationConfig(
            number_of_images=args.number_of_images,
            width=args.width,
            height=args.height,
            cfg_scale=args.cfg_scale,
            seed=args.seed,
            quality=args.quality,
        )
    except ValueError as e:
        parser.error(str(e))

    try:
        client = BedrockClient(settings_from_args(args))
        result = text_to_image(
            client,
            args.prompt,
            args.output,
            negative_prompt=args.negative,
            generation_config=generation_config,
        )
    except BedrockKitError as e:
        LOG.error("%s", e)
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)

    if result.saved_files:
        print("Writing:")
    for path in result.saved_files:
        print(path)


if __name__ == "__main__":
    main()
