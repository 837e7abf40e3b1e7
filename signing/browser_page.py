from __future__ import annotations

import html
import json
from string import Template
from typing import Any, Optional

DISPLAY_URI_MAX = 80


def escape_html(s: str) -> str:
    return html.escape(s, quote=True)


def safe_json_embed(value: Any) -> str:
    """
    JSON for inlining inside a <script> tag.

    json.dumps does not escape `</script>`, so `<` is emitted as \\u003c.
    """
    return json.dumps(value).replace("<", "\\u003c")


def truncate_uri(uri: str, max_length: int = DISPLAY_URI_MAX) -> str:
    if len(uri) <= max_length:
        return uri
    return uri[:max_length] + "..."


def build_html(
    *,
    to: str,
    data: str,
    chain_id: int,
    chain_name: str,
    nonce: str,
    uri: Optional[str] = None,
    gas: Optional[int] = None,
    title: str = "Register Agent",
) -> str:
    uri_row = ""
    if uri:
        uri_row = (
            '<div class="detail-row">'
            '<span class="detail-label">URI</span>'
            f'<span class="detail-value">{escape_html(truncate_uri(uri))}</span>'
            "</div>"
        )

    return _PAGE.substitute(
        title=escape_html(title),
        chain_label=escape_html(f"{chain_name} ({chain_id})"),
        to_label=escape_html(to),
        uri_row=uri_row,
        to_json=safe_json_embed(to),
        data_json=safe_json_embed(data),
        chain_id_hex_json=safe_json_embed(hex(chain_id)),
        chain_id=int(chain_id),
        gas_json=safe_json_embed(hex(gas)) if gas else "undefined",
        result_path_json=safe_json_embed(f"/result/{nonce}"),
    )


_PAGE = Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>registry-signer - $title</title>
<style>
  :root {
    --bg: #08080c;
    --surface: #111118;
    --surface-raised: #18181f;
    --border: #222230;
    --border-hover: #3a3a50;
    --text: #c8c8d0;
    --text-dim: #6a6a78;
    --text-bright: #eeeef2;
    --accent: #6e56cf;
    --green: #3dd68c;
    --red: #e5484d;
    --blue: #52a9ff;
    --mono: 'SF Mono', 'Fira Code', monospace;
    --sans: system-ui, sans-serif;
    --radius: 8px;
  }
  * { margin: 0; padding: 0; box-sizing: border-box; }
  body {
    font-family: var(--sans);
    background: var(--bg);
    color: var(--text);
    min-height: 100vh;
    display: flex;
    align-items: center;
    justify-content: center;
    padding: 2rem;
  }
  .container { max-width: 420px; width: 100%; }
  .brand {
    font-family: var(--mono);
    font-size: 0.7rem;
    letter-spacing: 0.08em;
    text-transform: uppercase;
    color: var(--accent);
    margin-bottom: 0.75rem;
  }
  h1 { font-size: 1.35rem; font-weight: 600; color: var(--text-bright); margin-bottom: 1.75rem; }
  .details {
    background: var(--surface);
    border: 1px solid var(--border);
    border-radius: var(--radius);
    margin-bottom: 1.5rem;
  }
  .detail-row {
    display: flex;
    justify-content: space-between;
    align-items: baseline;
    padding: 0.65rem 0.85rem;
    gap: 1rem;
  }
  .detail-row + .detail-row { border-top: 1px solid var(--border); }
  .detail-label {
    font-family: var(--mono);
    font-size: 0.7rem;
    color: var(--text-dim);
    text-transform: uppercase;
    white-space: nowrap;
  }
  .detail-value {
    font-family: var(--mono);
    font-size: 0.75rem;
    text-align: right;
    word-break: break-all;
  }
  .section-label {
    font-family: var(--mono);
    font-size: 0.7rem;
    color: var(--text-dim);
    text-transform: uppercase;
    margin-bottom: 0.6rem;
  }
  button {
    width: 100%;
    padding: 0.7rem 0.85rem;
    background: var(--surface);
    border: 1px solid var(--border);
    border-radius: var(--radius);
    color: var(--text);
    font-family: var(--sans);
    font-size: 0.85rem;
    font-weight: 500;
    cursor: pointer;
    margin-bottom: 0.4rem;
  }
  button:hover:not(:disabled) { background: var(--surface-raised); border-color: var(--border-hover); }
  button:disabled { opacity: 0.35; cursor: not-allowed; }
  .wallet-btn { display: flex; align-items: center; gap: 0.7rem; }
  .wallet-btn img { width: 24px; height: 24px; border-radius: 5px; }
  #walletInfo {
    display: none;
    font-family: var(--mono);
    font-size: 0.75rem;
    background: var(--surface);
    border: 1px solid var(--border);
    border-radius: var(--radius);
    padding: 0.7rem 0.85rem;
    margin-bottom: 1rem;
    word-break: break-all;
  }
  #sendBtn { display: none; background: var(--accent); border: none; color: #fff; font-weight: 600; }
  #cancelBtn { background: transparent; color: var(--text-dim); font-size: 0.75rem; }
  .status {
    margin-top: 1rem;
    padding: 0.65rem 0.85rem;
    border-radius: var(--radius);
    font-family: var(--mono);
    font-size: 0.72rem;
    display: none;
    word-break: break-all;
  }
  .status.error { color: var(--red); border: 1px solid var(--red); display: block; }
  .status.success { color: var(--green); border: 1px solid var(--green); display: block; }
  .status.info { color: var(--blue); border: 1px solid var(--blue); display: block; }
</style>
</head>
<body>
<div class="container">
  <div class="brand">registry-signer</div>
  <h1>$title</h1>

  <div class="details">
    <div class="detail-row">
      <span class="detail-label">Chain</span>
      <span class="detail-value">$chain_label</span>
    </div>
    <div class="detail-row">
      <span class="detail-label">To</span>
      <span class="detail-value">$to_label</span>
    </div>
    $uri_row
  </div>

  <div id="walletInfo"></div>

  <div id="walletSection">
    <div class="section-label" id="discovering">Discovering wallets...</div>
    <div id="walletList"></div>
  </div>

  <button id="sendBtn" type="button" disabled>$title</button>
  <button id="cancelBtn" type="button">Cancel</button>

  <div class="status" id="status"></div>
</div>

<script>
  const TO = $to_json;
  const CALLDATA = $data_json;
  const CHAIN_ID_HEX = $chain_id_hex_json;
  const CHAIN_ID = $chain_id;
  const GAS = $gas_json;
  const RESULT_PATH = $result_path_json;
  const EXPLORERS = {
    1: "https://etherscan.io",
    11155111: "https://sepolia.etherscan.io",
    84532: "https://sepolia.basescan.org",
  };

  const sendBtn = document.getElementById("sendBtn");
  const cancelBtn = document.getElementById("cancelBtn");
  const statusEl = document.getElementById("status");
  const walletInfo = document.getElementById("walletInfo");
  const walletListEl = document.getElementById("walletList");
  const walletSectionEl = document.getElementById("walletSection");
  const discoveringEl = document.getElementById("discovering");

  const discoveredWallets = new Map();
  let account = null;
  let selectedProvider = null;
  let reported = false;

  function setStatus(msg, type) {
    statusEl.textContent = msg;
    statusEl.className = "status " + type;
  }

  async function report(body) {
    if (reported) return;
    reported = true;
    cancelBtn.disabled = true;
    await fetch(RESULT_PATH, {
      method: "POST",
      headers: { "Content-Type": "application/json" },
      body: JSON.stringify(body),
    });
  }

  window.addEventListener("eip6963:announceProvider", (event) => {
    const { info, provider } = event.detail;
    if (!info || !info.rdns || discoveredWallets.has(info.rdns)) return;
    discoveredWallets.set(info.rdns, { info, provider });
    renderWalletList();
  });
  window.dispatchEvent(new Event("eip6963:requestProvider"));

  setTimeout(() => {
    if (discoveredWallets.size > 0) return;
    discoveringEl.style.display = "none";
    if (window.ethereum) {
      renderLegacyConnect();
    } else {
      setStatus("No wallet detected. Install a browser wallet extension.", "error");
    }
  }, 500);

  function renderWalletList() {
    discoveringEl.style.display = "none";
    walletListEl.replaceChildren();
    for (const [rdns, detail] of discoveredWallets) {
      const btn = document.createElement("button");
      btn.className = "wallet-btn";
      btn.type = "button";
      if (detail.info.icon && /^data:image\\//.test(detail.info.icon)) {
        const img = document.createElement("img");
        img.src = detail.info.icon;
        img.alt = "";
        btn.appendChild(img);
      }
      const label = document.createElement("span");
      label.textContent = detail.info.name || rdns;
      btn.appendChild(label);
      btn.addEventListener("click", () => connectWallet(detail, btn));
      walletListEl.appendChild(btn);
    }
  }

  function renderLegacyConnect() {
    walletListEl.replaceChildren();
    const btn = document.createElement("button");
    btn.type = "button";
    btn.textContent = "Connect Wallet";
    btn.addEventListener("click", () => {
      connectWallet({ info: { name: "Browser Wallet", rdns: "_legacy" }, provider: window.ethereum }, btn);
    });
    walletListEl.appendChild(btn);
  }

  function enableWalletButtons(enabled) {
    walletListEl.querySelectorAll("button").forEach((b) => { b.disabled = !enabled; });
  }

  async function connectWallet(detail, btn) {
    try {
      enableWalletButtons(false);
      btn.textContent = "Connecting...";
      selectedProvider = detail.provider;
      const accounts = await selectedProvider.request({ method: "eth_requestAccounts" });
      account = accounts[0];

      const currentChainId = await selectedProvider.request({ method: "eth_chainId" });
      if (currentChainId !== CHAIN_ID_HEX) {
        setStatus("Switching chain...", "info");
        try {
          await selectedProvider.request({
            method: "wallet_switchEthereumChain",
            params: [{ chainId: CHAIN_ID_HEX }],
          });
        } catch (switchErr) {
          if (switchErr.code === 4902) {
            setStatus("Chain not found in wallet. Please add it manually and try again.", "error");
            enableWalletButtons(true);
            return;
          }
          throw switchErr;
        }
      }

      walletInfo.textContent = account;
      walletInfo.style.display = "block";
      walletSectionEl.style.display = "none";
      sendBtn.style.display = "block";
      sendBtn.disabled = false;
      setStatus("Wallet connected. Ready to sign.", "success");

      if (selectedProvider.on) {
        selectedProvider.on("accountsChanged", () => location.reload());
        selectedProvider.on("chainChanged", () => location.reload());
      }
    } catch (err) {
      if (err.code === 4001) {
        setStatus("Connection rejected by user.", "error");
      } else {
        setStatus("Connection failed: " + err.message, "error");
      }
      if (discoveredWallets.size > 0) {
        renderWalletList();
      } else {
        renderLegacyConnect();
      }
    }
  }

  sendBtn.addEventListener("click", async () => {
    if (!selectedProvider || !account) return;
    const label = sendBtn.textContent;
    try {
      sendBtn.disabled = true;
      sendBtn.textContent = "Sign in wallet...";
      setStatus("Please sign the transaction in your wallet.", "info");

      const txParams = { from: account, to: TO, data: CALLDATA };
      if (GAS) txParams.gas = GAS;

      const txHash = await selectedProvider.request({
        method: "eth_sendTransaction",
        params: [txParams],
      });
      if (typeof txHash !== "string" || !/^0x[0-9a-f]{64}$$/i.test(txHash)) {
        throw new Error("Wallet returned invalid transaction hash");
      }

      statusEl.textContent = "";
      const msg = document.createElement("div");
      msg.appendChild(document.createTextNode("Transaction sent! "));
      const explorerBase = EXPLORERS[CHAIN_ID];
      if (explorerBase) {
        const link = document.createElement("a");
        link.href = explorerBase + "/tx/" + txHash;
        link.target = "_blank";
        link.rel = "noopener";
        link.style.color = "inherit";
        link.textContent = link.href;
        msg.appendChild(link);
      } else {
        msg.appendChild(document.createTextNode(txHash));
      }
      const hint = document.createElement("div");
      hint.textContent = "You can safely close this page and return to the CLI.";
      statusEl.appendChild(msg);
      statusEl.appendChild(hint);
      statusEl.className = "status success";
      sendBtn.textContent = "Sent!";

      await report({ txHash });
    } catch (err) {
      if (err.code === 4001) {
        setStatus("Transaction rejected. You can try again.", "error");
      } else {
        setStatus("Failed: " + err.message + ". You can try again.", "error");
      }
      sendBtn.disabled = false;
      sendBtn.textContent = label;
    }
  });

  cancelBtn.addEventListener("click", async () => {
    sendBtn.disabled = true;
    setStatus("Cancelled. You can close this page.", "error");
    await report({ error: "User cancelled in browser" });
  });
</script>
</body>
</html>
"""
)
