"""Write test QR images in the compact format for a school.

Usage: python generate_qr_codes.py <school_id> student:15 child:7 ...
"""
import argparse
import os

from app.models.identity import PersonRef
from app.services.compact_codec import encode_compact
from app.services.qr_generator import save_qr_png


def qr_filename(ref: PersonRef) -> str:
    return f"{ref.type.value}-{ref.id}-qr.png"


def generate_test_qr_codes(
    people: list,
    qr_output_folder: str = "qr_codes"
) -> list:
    os.makedirs(qr_output_folder, exist_ok=True)

    written = []
    for ref in people:
        payload = encode_compact(ref)
        qr_filepath = os.path.join(qr_output_folder, qr_filename(ref))
        save_qr_png(payload, qr_filepath)
        written.append(qr_filepath)
        print(f"✓ {payload}")
        print(f"  → Saved PNG to: {qr_filepath}")

    print(f"\n✓ Successfully generated {len(written)} QR codes!")
    return written


def parse_person(value: str, school_id: int) -> PersonRef:
    person_type, _, person_id = value.partition(":")
    try:
        return PersonRef(id=int(person_id), type=person_type, school_id=school_id)
    except (TypeError, ValueError) as e:
        raise argparse.ArgumentTypeError(f"bad person {value!r}: {e}")


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("school_id", type=int)
    parser.add_argument("people", nargs="+", help="type:id, e.g. student:15")
    parser.add_argument("--output", default="qr_codes")
    args = parser.parse_args(argv)

    try:
        people = [parse_person(p, args.school_id) for p in args.people]
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    return generate_test_qr_codes(people, qr_output_folder=args.output)


if __name__ == '__main__':
    main()
