INDEXING = 'INDEXING'
INDEXED = 'INDEXED'
FAILED = 'FAILED'

current_schema_version = 2000000

schema = """
PRAGMA user_version = {};
""".format(current_schema_version) + """

-- One row per configured root URL. Purged and recreated on every full crawl.
CREATE TABLE dse_site(
  id integer primary key,
  status text not null check (status IN ('INDEXING', 'INDEXED', 'FAILED')),
  status_time text not null default (strftime('%Y-%m-%d %H:%M:%f')),
  last_error text,
  url text not null,
  name text not null
);

CREATE TABLE dse_page(
  id integer primary key,
  site_id integer not null references dse_site(id) on delete cascade,
  -- Relative to the site's URL, always starts with /
  path text not null,
  code integer not null,
  content text not null
);

-- frequency is a document frequency: the number of pages on the site
-- that contain the lemma at least once.
CREATE TABLE dse_lemma(
  id integer primary key,
  site_id integer not null references dse_site(id) on delete cascade,
  lemma text not null,
  frequency integer not null
);

-- Postings. rank_value is the number of times the lemma occurs on the page.
CREATE TABLE dse_index(
  id integer primary key,
  page_id integer not null references dse_page(id) on delete cascade,
  lemma_id integer not null references dse_lemma(id) on delete cascade,
  rank_value real not null
);

CREATE UNIQUE INDEX idx_dse_page_site_path ON dse_page(site_id, path);
CREATE UNIQUE INDEX idx_dse_lemma_site_lemma ON dse_lemma(site_id, lemma);
CREATE INDEX idx_dse_site_url ON dse_site(url);
CREATE INDEX idx_dse_index_lemma_page ON dse_index(lemma_id, page_id);
CREATE INDEX idx_dse_index_page ON dse_index(page_id);
"""
