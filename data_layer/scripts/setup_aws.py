"""Slotting tablolarını kurar veya siler.

Kullanım:
    python -m data_layer.scripts.setup_aws                       # Tabloları kur
    python -m data_layer.scripts.setup_aws --delete              # Tabloları sil
    python -m data_layer.scripts.setup_aws --region eu-west-1    # Farklı region
    python -m data_layer.scripts.setup_aws --prefix test-        # Tablo adı prefix'i
"""
import sys

from data_layer.infrastructure.dynamodb_setup import create_tables, delete_tables


def main(argv=None):
    region = None
    prefix = None
    delete_mode = False

    # Argümanları parse et
    args = sys.argv[1:] if argv is None else argv
    for i, arg in enumerate(args):
        if arg == "--delete":
            delete_mode = True
        elif arg == "--region" and i + 1 < len(args):
            region = args[i + 1]
        elif arg == "--prefix" and i + 1 < len(args):
            prefix = args[i + 1]

    if delete_mode:
        print("🗑️  DynamoDB tabloları siliniyor...\n")
        delete_tables(region, prefix)
        print("\n✅ Tablolar silindi!")
        return

    print("=" * 60)
    print("🚀 AWS Altyapı Kurulumu - Depo Lokasyon Yönetimi")
    print(f"   Region: {region or 'varsayılan'}")
    print("=" * 60)

    print("\n📊 DynamoDB Tabloları")
    print("-" * 40)
    created = create_tables(region, prefix)

    print("\n" + "=" * 60)
    print(f"✅ Altyapı hazır! ({len(created)} yeni tablo)")
    print("=" * 60)


if __name__ == "__main__":
    main()
