"""
Region catalog: anatomical region id -> muscles and nerves.

Region ids are the keys the body diagram emits (e.g. "lower-back-center",
"knee-left-anterior"). Lookups for unknown ids return None; callers treat that
as "no mapping available", not as an error.
"""

from __future__ import annotations

from collections.abc import Iterable
from types import MappingProxyType

from schemas.catalog import MuscleMapping


def _m(primary: list[str], secondary: list[str], nerves: list[str]) -> MuscleMapping:
    return MuscleMapping(primary=tuple(primary), secondary=tuple(secondary), nerves=tuple(nerves))


def _bilateral(template: str, mapping: MuscleMapping) -> list[tuple[str, MuscleMapping]]:
    # Left before right, matching the diagram's declaration order.
    return [(template.format(side=side), mapping) for side in ("left", "right")]


_ENTRIES: list[tuple[str, MuscleMapping]] = [
    # Head & neck
    ("head", _m(["Temporalis", "Masseter", "Occipitalis"], ["Frontalis", "Orbicularis"], ["Trigeminal nerve", "Facial nerve"])),
    ("neck-anterior", _m(["Sternocleidomastoid", "Scalenes"], ["Platysma", "Longus colli"], ["Cervical plexus", "Accessory nerve"])),
    (
        "neck-posterior",
        _m(
            ["Trapezius (upper)", "Splenius capitis", "Semispinalis"],
            ["Levator scapulae", "Suboccipitals"],
            ["Cervical plexus", "Greater occipital nerve"],
        ),
    ),
    # Shoulders
    *_bilateral(
        "shoulder-{side}-anterior",
        _m(
            ["Deltoid (anterior)", "Pectoralis major (clavicular)"],
            ["Biceps brachii (long head)", "Coracobrachialis"],
            ["Axillary nerve", "Musculocutaneous nerve"],
        ),
    ),
    *_bilateral(
        "shoulder-{side}-posterior",
        _m(
            ["Deltoid (posterior)", "Infraspinatus", "Teres minor"],
            ["Supraspinatus", "Teres major"],
            ["Axillary nerve", "Suprascapular nerve"],
        ),
    ),
    # Chest
    *_bilateral(
        "chest-{side}",
        _m(
            ["Pectoralis major", "Pectoralis minor"],
            ["Serratus anterior", "Intercostals"],
            ["Pectoral nerves", "Long thoracic nerve"],
        ),
    ),
    ("chest-center", _m(["Pectoralis major (sternal)"], ["Intercostals"], ["Pectoral nerves", "Intercostal nerves"])),
    # Upper back
    *_bilateral(
        "upper-back-{side}",
        _m(
            ["Trapezius (middle)", "Rhomboids"],
            ["Latissimus dorsi (upper)", "Serratus posterior superior"],
            ["Dorsal scapular nerve", "Accessory nerve"],
        ),
    ),
    (
        "upper-back-center",
        _m(
            ["Trapezius", "Erector spinae (thoracic)"],
            ["Multifidus", "Rotatores"],
            ["Spinal nerves (thoracic)", "Accessory nerve"],
        ),
    ),
    # Arms
    *_bilateral("upper-arm-{side}-anterior", _m(["Biceps brachii", "Brachialis"], ["Coracobrachialis"], ["Musculocutaneous nerve"])),
    *_bilateral("upper-arm-{side}-posterior", _m(["Triceps brachii"], ["Anconeus"], ["Radial nerve"])),
    *_bilateral(
        "forearm-{side}-anterior",
        _m(
            ["Flexor carpi radialis", "Flexor carpi ulnaris", "Pronator teres"],
            ["Flexor digitorum superficialis", "Palmaris longus"],
            ["Median nerve", "Ulnar nerve"],
        ),
    ),
    *_bilateral(
        "forearm-{side}-posterior",
        _m(
            ["Extensor carpi radialis", "Extensor carpi ulnaris", "Extensor digitorum"],
            ["Supinator", "Brachioradialis"],
            ["Radial nerve", "Posterior interosseous nerve"],
        ),
    ),
    *_bilateral(
        "hand-{side}",
        _m(
            ["Thenar muscles", "Hypothenar muscles", "Lumbricals"],
            ["Interossei", "Adductor pollicis"],
            ["Median nerve", "Ulnar nerve"],
        ),
    ),
    # Abdomen
    (
        "abdomen-upper",
        _m(
            ["Rectus abdominis (upper)", "External oblique"],
            ["Internal oblique", "Transversus abdominis"],
            ["Intercostal nerves", "Subcostal nerve"],
        ),
    ),
    (
        "abdomen-lower",
        _m(
            ["Rectus abdominis (lower)", "External oblique"],
            ["Internal oblique", "Transversus abdominis"],
            ["Iliohypogastric nerve", "Ilioinguinal nerve"],
        ),
    ),
    *_bilateral(
        "abdomen-{side}",
        _m(["External oblique", "Internal oblique"], ["Transversus abdominis"], ["Intercostal nerves", "Subcostal nerve"]),
    ),
    # Lower back
    *_bilateral(
        "lower-back-{side}",
        _m(
            ["Erector spinae", "Quadratus lumborum"],
            ["Multifidus", "Latissimus dorsi"],
            ["Lumbar spinal nerves", "Subcostal nerve"],
        ),
    ),
    ("lower-back-center", _m(["Erector spinae", "Multifidus"], ["Interspinales", "Rotatores"], ["Lumbar spinal nerves"])),
    # Hips & glutes
    *_bilateral(
        "hip-{side}-anterior",
        _m(["Iliopsoas", "Rectus femoris"], ["Tensor fasciae latae", "Sartorius"], ["Femoral nerve", "Lumbar plexus"]),
    ),
    *_bilateral(
        "glute-{side}",
        _m(
            ["Gluteus maximus", "Gluteus medius"],
            ["Gluteus minimus", "Piriformis"],
            ["Superior gluteal nerve", "Inferior gluteal nerve", "Sciatic nerve"],
        ),
    ),
    # Thighs
    *_bilateral(
        "thigh-{side}-anterior",
        _m(
            ["Quadriceps (rectus femoris, vastus lateralis, vastus medialis, vastus intermedius)"],
            ["Sartorius", "Tensor fasciae latae"],
            ["Femoral nerve"],
        ),
    ),
    *_bilateral(
        "thigh-{side}-posterior",
        _m(["Hamstrings (biceps femoris, semitendinosus, semimembranosus)"], ["Adductor magnus"], ["Sciatic nerve"]),
    ),
    *_bilateral(
        "thigh-{side}-inner",
        _m(["Adductor longus", "Adductor brevis", "Gracilis"], ["Pectineus", "Adductor magnus"], ["Obturator nerve"]),
    ),
    # Knees
    *_bilateral(
        "knee-{side}-anterior",
        _m(["Quadriceps tendon", "Patellar tendon"], ["Patella", "Knee joint capsule"], ["Femoral nerve", "Saphenous nerve"]),
    ),
    *_bilateral(
        "knee-{side}-posterior",
        _m(
            ["Popliteus", "Gastrocnemius (origin)"],
            ["Hamstring insertions", "Popliteal fossa"],
            ["Tibial nerve", "Common peroneal nerve"],
        ),
    ),
    # Lower legs
    *_bilateral("calf-{side}", _m(["Gastrocnemius", "Soleus"], ["Plantaris", "Tibialis posterior"], ["Tibial nerve"])),
    *_bilateral(
        "shin-{side}",
        _m(
            ["Tibialis anterior", "Extensor digitorum longus"],
            ["Extensor hallucis longus", "Peroneus tertius"],
            ["Deep peroneal nerve"],
        ),
    ),
    # Ankles & feet
    *_bilateral(
        "ankle-{side}",
        _m(
            ["Achilles tendon", "Tibialis anterior tendon"],
            ["Peroneal tendons", "Ankle joint capsule"],
            ["Tibial nerve", "Deep peroneal nerve"],
        ),
    ),
    *_bilateral(
        "foot-{side}",
        _m(
            ["Plantar fascia", "Intrinsic foot muscles"],
            ["Flexor hallucis brevis", "Abductor hallucis"],
            ["Tibial nerve", "Plantar nerves"],
        ),
    ),
]

MUSCLE_REGION_MAP: MappingProxyType[str, MuscleMapping] = MappingProxyType(dict(_ENTRIES))


def list_regions() -> list[str]:
    return list(MUSCLE_REGION_MAP.keys())


def get_muscles_for_region(region_id: str) -> MuscleMapping | None:
    return MUSCLE_REGION_MAP.get(region_id)


def get_all_muscles_for_regions(region_ids: Iterable[str]) -> set[str]:
    """Primary and secondary muscle names across regions, deduplicated. Unknown ids are skipped."""
    muscles: set[str] = set()
    for region_id in region_ids:
        mapping = MUSCLE_REGION_MAP.get(region_id)
        if mapping:
            muscles.update(mapping.primary)
            muscles.update(mapping.secondary)
    return muscles
