"""Service Worker used when PWA mode is on.

Consumes the asset manifest embedded at {{assetManifest}}:
- CRITICAL assets: precached first, the app can run offline once done
- BACKGROUND assets: precached after the critical set
- Hash-only assets: served from cache when already stored, else network
Entries are cached under their content hash, so unchanged files survive
a new build and stale hashes are dropped on activation.
"""

# SERVICE WORKER (PWA on)
# Placeholders resolved by the emitter:
# - {{buildTimestamp}}: build timestamp, compared with the entry document meta tag
# - {{assetManifest}}: serialized asset manifest

SERVICE_WORKER_ON_JS = r"""const BUILD_TIMESTAMP = "{{buildTimestamp}}";

console.log("PWA mode is on - buildTimestamp = " + BUILD_TIMESTAMP);

const CACHE_NAME = "pwa-asset-cache";
const ENTRY_PATHS = ["/", "/index.html"];

// { "/path": "hash" } or { "/path": { strategy, hash, size, gzipSize } }
const ASSET_MANIFEST = {{assetManifest}};

function indexManifest(manifest) {
    const byHash = {};
    const byPath = {};
    for (const [path, entry] of Object.entries(manifest || {})) {
        if (typeof entry === "string") {
            byPath[path] = entry;
            if (!byHash[entry]) byHash[entry] = { path };
        } else if (entry && typeof entry.hash === "string") {
            byPath[path] = entry.hash;
            byHash[entry.hash] = {
                path,
                strategy: entry.strategy,
                size: entry.size || 0,
                gzipSize: entry.gzipSize || 0
            };
        }
    }
    return { byHash, byPath };
}

const { byHash: HASH_TO_INFO, byPath: PATH_TO_HASH } = indexManifest(ASSET_MANIFEST);

let criticalDone = false;
let totalBytes = 0;
let downloadedBytes = 0;

function scope() {
    return (self.registration && self.registration.scope) || (self.location.origin + "/");
}

function scopePathname() {
    try {
        return new URL(scope()).pathname;
    } catch (e) {
        return "/";
    }
}

function hashRequest(hash) {
    return new Request(scope() + hash);
}

function scopedRequest(path) {
    const relative = path.startsWith("/") ? path.substring(1) : path;
    return new Request(new URL(relative, scope()).toString());
}

function manifestPath(request) {
    const pathname = new URL(request.url).pathname;
    const base = scopePathname();
    if (base !== "/" && pathname.startsWith(base)) {
        return "/" + pathname.substring(base.length);
    }
    return pathname;
}

async function reportProgress(completed = false) {
    const clients = await self.clients.matchAll({ includeUncontrolled: true });
    clients.forEach(client => client.postMessage({
        type: "loading_progress",
        current: downloadedBytes,
        total: totalBytes,
        completed,
        criticalCompleted: criticalDone
    }));
}

async function precache(entries) {
    const cache = await caches.open(CACHE_NAME);
    await Promise.all(entries.map(async ([hash, info]) => {
        const request = hashRequest(hash);
        if (!(await cache.match(request))) {
            try {
                const response = await fetch(scopedRequest(info.path), { cache: "no-cache" });
                if (response.ok) await cache.put(request, response);
            } catch (e) {
                console.error("Failed to precache " + info.path, e);
            }
        }
        downloadedBytes += info.gzipSize || info.size;
        reportProgress();
    }));
}

async function criticalCached() {
    if (criticalDone) return true;
    const cache = await caches.open(CACHE_NAME);
    const critical = Object.keys(HASH_TO_INFO).filter(hash => HASH_TO_INFO[hash].strategy === "CRITICAL");
    const cached = await Promise.all(critical.map(hash => cache.match(hashRequest(hash))));
    criticalDone = cached.every(Boolean);
    return criticalDone;
}

self.addEventListener("message", event => {
    if (event.data && event.data.type === "check_status") {
        criticalCached().then(done => event.source.postMessage({ type: "status", criticalCompleted: done }));
    }
});

self.addEventListener("install", event => {
    const installed = (async () => {
        const cache = await caches.open(CACHE_NAME);
        await cache.add(scopedRequest("/index.html"));
        await self.skipWaiting();
    })();
    event.waitUntil(installed);

    (async () => {
        await installed;
        const managed = Object.entries(HASH_TO_INFO).filter(([, info]) => info.strategy);
        managed.forEach(([, info]) => { totalBytes += info.gzipSize || info.size; });
        await reportProgress();
        await precache(managed.filter(([, info]) => info.strategy === "CRITICAL"));
        criticalDone = true;
        await reportProgress();
        await precache(managed.filter(([, info]) => info.strategy !== "CRITICAL"));
        await reportProgress(true);
    })();
});

self.addEventListener("activate", event => {
    event.waitUntil((async () => {
        const valid = new Set(Object.keys(HASH_TO_INFO));
        const base = scopePathname();
        for (const key of await caches.keys()) {
            if (key !== CACHE_NAME) {
                await caches.delete(key);
                continue;
            }
            const cache = await caches.open(key);
            for (const request of await cache.keys()) {
                const suffix = new URL(request.url).pathname.substring(base.length);
                if (/^[a-f0-9]{64}$/i.test(suffix) && !valid.has(suffix)) {
                    await cache.delete(request);
                }
            }
        }
        await self.clients.claim();
    })());
});

async function networkFirst(request, path) {
    try {
        const response = await fetch(request, { cache: "no-cache" });
        if (response.ok) {
            if (ENTRY_PATHS.includes(path)) {
                const text = await response.clone().text();
                const match = text.match(/<meta\s+name=["']buildTimestamp["']\s+content=["']([^"']+)["']/i);
                if (match && match[1] !== BUILD_TIMESTAMP && self.registration.update) {
                    self.registration.update().catch(() => {});
                }
            }
            const cache = await caches.open(CACHE_NAME);
            await cache.put(request, response.clone());
            return response;
        }
    } catch (e) { }

    const cached = await caches.match(request);
    if (cached) return cached;
    const hash = PATH_TO_HASH[path];
    if (hash) return caches.match(hashRequest(hash));
    return caches.match(scopedRequest("/index.html"));
}

self.addEventListener("fetch", event => {
    if (event.request.method !== "GET") return;

    const url = new URL(event.request.url);
    if (url.origin !== self.location.origin) return;

    const path = manifestPath(event.request);

    // Entry document and bootstrap script must never be served stale when online
    if (ENTRY_PATHS.includes(path) || path.endsWith(".nocache.js")) {
        event.respondWith(networkFirst(event.request, path));
        return;
    }

    event.respondWith((async () => {
        const hash = PATH_TO_HASH[path];
        if (hash) {
            const cached = await caches.match(hashRequest(hash));
            if (cached) return cached;
        }
        try {
            return await fetch(event.request);
        } catch (e) {
            if (event.request.mode === "navigate") {
                const fallback = await caches.match(scopedRequest("/index.html"));
                if (fallback) return fallback;
            }
            throw e;
        }
    })());
});
"""
