from __future__ import annotations

import json
import sys
from importlib.resources import files
from pathlib import Path

USAGE = """Uso:
  impostos-venda init                 cria os arquivos de exemplo
  impostos-venda calcular VENDA.yaml  calcula impostos da venda (--json para JSON)
  impostos-venda mva [UF]             lista a tabela MVA ativa
  impostos-venda mva --status         verifica o arquivo da tabela MVA
"""


def _init_config() -> None:
    """Copy bundled config templates to the user's config directory."""
    from impostos.config import get_config_dir

    config_dir = get_config_dir()
    templates = files("impostos") / "templates"
    config_dir.mkdir(parents=True, exist_ok=True)

    copied = 0
    for rel in ["mva.yaml.example", "impostos.yaml.example", "venda.yaml.example"]:
        dest = config_dir / rel
        if dest.exists():
            print(f"  já existe: {dest}")
            continue
        src = templates / rel
        with src.open("rb") as f:
            dest.write_bytes(f.read())
        print(f"  criado: {dest}")
        copied += 1

    print()
    print(f"Configuração: {config_dir}")
    print()
    if copied:
        print("Próximos passos:")
        print(f"  1. cp {config_dir / 'mva.yaml.example'} {config_dir / 'mva.yaml'}")
        print("  2. Edite mva.yaml com as MVAs por NCM e UF")
        print(f"  3. Execute: impostos-venda calcular {config_dir / 'venda.yaml.example'}")
    else:
        print("Nenhum arquivo novo criado (todos já existiam).")


def _print_sale(computed) -> None:
    from impostos.utils.formatters import format_brl

    for index, (item, result) in enumerate(
        zip(computed.items, computed.results, strict=True), start=1
    ):
        label = item.description or item.product_id or f"item {index}"
        print(f"{index}. {label}")
        if item.discount_share:
            print(f"   Valor bruto:    {format_brl(item.gross_or_net)}")
            print(f"   Desconto:       {format_brl(item.discount_share)}")
        print(f"   Valor líquido:  {format_brl(result.net_value)}")
        if result.st_applied:
            print(f"   Base ST:        {format_brl(result.st_base)}")
            print(f"   ICMS ST:        {format_brl(result.icms_st)}")
            print(f"   ICMS próprio:   {format_brl(result.icms_own)}")
        print(f"   ST final:       {format_brl(result.st_final)}")
        print(f"   IPI:            {format_brl(result.ipi)}")
        if result.icms_value:
            print(f"   ICMS (info):    {format_brl(result.icms_value)}")
        print(f"   Valor final:    {format_brl(result.final_value)}")

    total = computed.aggregate
    print()
    if computed.taxes_suppressed:
        print("Venda SEM IMPOSTOS")
    print(f"Itens: {total.item_count} ({total.st_item_count} com ST)")
    if total.discount:
        print(f"Total bruto:    {format_brl(total.gross_value)}")
        print(f"Desconto:       {format_brl(total.discount)}")
    print(f"Total líquido:  {format_brl(total.net_value)}")
    print(f"Total ST:       {format_brl(total.st_final)}")
    print(f"Total IPI:      {format_brl(total.ipi)}")
    print(f"Total da venda: {format_brl(total.final_value)}")
    if total.icms_value:
        print(f"ICMS (informativo, fora do total): {format_brl(total.icms_value)}")


def _calculate(args: list[str]) -> int:
    from impostos.config import get_mva_path, load_sale
    from impostos.services.exceptions import MvaStoreError, ValidationError
    from impostos.services.sale import calculate_sale
    from impostos.utils.mva_store import load_table

    paths = [a for a in args if not a.startswith("--")]
    if len(paths) != 1:
        print(USAGE)
        return 1
    path = Path(paths[0])
    if not path.is_file():
        print(f"Erro: arquivo não encontrado: {path}")
        return 1

    try:
        table = load_table() if get_mva_path().is_file() else None
        computed = calculate_sale(load_sale(path), table)
    except (ValidationError, MvaStoreError, ValueError) as e:
        print(f"Erro: {e}")
        return 1

    if "--json" in args:
        print(json.dumps(computed.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_sale(computed)
    return 0


def _mva_status() -> int:
    """Report the MVA store health without modifying it."""
    from impostos.utils.mva_store import check_store_health

    health = check_store_health()
    if health.store_ok:
        print(f"OK Tabela MVA: {health.entry_count} entrada(s)")
    else:
        print("ERRO Tabela MVA: arquivo corrompido")
    for b in health.corrupt_backups:
        print(f"AVISO Backup encontrado: {b}")
        print("   Recuperação: corrigir o arquivo e renomear para mva.yaml")
    return 0 if health.store_ok else 1


def _list_mva(args: list[str]) -> int:
    if "--status" in args:
        return _mva_status()

    from impostos.models.mva import MvaTableEntry
    from impostos.services.exceptions import MvaStoreError, ValidationError
    from impostos.utils.formatters import format_percent
    from impostos.utils.mva_store import list_entries

    uf = args[0] if args else None
    try:
        entries = list_entries(uf=uf, active_only=True)
    except (ValidationError, MvaStoreError) as e:
        print(f"Erro: {e}")
        return 1

    if not entries:
        print("Nenhuma entrada MVA cadastrada.")
        return 0
    for row in entries:
        entry = MvaTableEntry.from_dict(row)
        key = entry.key
        st = format_percent(entry.mva_percent) if entry.subject_to_st else "sem ST"
        route = f"{key.origin_uf}->{key.destination_uf}"
        print(f"{key.product:<8} {route}  {st:>10}  {entry.description or ''}")
    return 0


def main() -> None:
    """Entry point for the impostos-venda CLI."""
    args = sys.argv[1:]
    if not args:
        print(USAGE)
        sys.exit(1)

    command, rest = args[0], args[1:]
    if command == "init":
        _init_config()
        return
    handlers = {"calcular": _calculate, "mva": _list_mva}
    handler = handlers.get(command)
    if handler is not None:
        code = handler(rest)
        if code:
            sys.exit(code)
        return

    print(f"Comando desconhecido: {command}")
    print(USAGE)
    sys.exit(1)


if __name__ == "__main__":
    main()
